"""Configuration parsing, weight files, planar images, image transforms and pooling/normalization layers."""

__version__ = "0.1.0"