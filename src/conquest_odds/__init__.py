"""Combat resolution and conquest probabilities for territory-conquest board games."""

__version__ = "0.1.0"
