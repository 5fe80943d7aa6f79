"""Visual designer for fillable PDF forms."""

__version__ = "0.1.0"
