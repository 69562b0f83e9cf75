"""
Pipeline Module

Run orchestration, payload lists and output naming.
"""

from .orchestrator import ReplacementPipeline
from .outputs import resolve_output_paths, open_video_sinks, open_image_sinks
from .payloads import load_payloads, parse_payload_lines

__all__ = [
    "ReplacementPipeline",
    "resolve_output_paths",
    "open_video_sinks",
    "open_image_sinks",
    "load_payloads",
    "parse_payload_lines",
]
