"""
mediaproc - media post-processing decision engine.
Probes downloaded files, validates them and drives ffmpeg to watermark,
re-encode, split, preview and thumbnail them.
"""

from .__version__ import __version__

__all__ = ["__version__"]
