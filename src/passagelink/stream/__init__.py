"""Streaming key-point parsing."""

from __future__ import annotations

from .keypoints import KeyPointEntry, KeyPointStream, consume_stream, create_key_point_stream

__all__ = ["KeyPointEntry", "KeyPointStream", "consume_stream", "create_key_point_stream"]
