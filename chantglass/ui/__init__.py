"""Qt user interface for ChantGlass."""
