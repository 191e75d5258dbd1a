"""instancevol - instance volume lifecycle reconciler."""

__version__ = "0.1.0"
