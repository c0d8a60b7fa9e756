"""Multi-channel image regression training with map-file minibatch sources."""

__version__ = "0.0.1"
