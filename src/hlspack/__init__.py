"""hlspack - package video files as adaptive-bitrate HLS presentations."""

__version__ = "0.1.0"
