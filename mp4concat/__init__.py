# Concatenate sequentially recorded video segments with ffmpeg
__version__ = "1.0.0"
