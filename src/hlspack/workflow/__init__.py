"""Job planning and orchestration."""

from hlspack.workflow.orchestrator import JobPaths, VideoProcessingOrchestrator
from hlspack.workflow.planner import build_processing_plan, select_resolutions

__all__ = [
    "JobPaths",
    "VideoProcessingOrchestrator",
    "build_processing_plan",
    "select_resolutions",
]
