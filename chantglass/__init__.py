"""ChantGlass - chant ordering puzzle with synchronized video cues."""

__app_name__ = "ChantGlass"
__version__ = "0.1.0"
