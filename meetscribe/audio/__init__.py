"""Audio capture, chunk encoding and visualization.

``AudioCapture`` lives in ``meetscribe.audio.capture`` and is imported
directly where a real microphone is needed.
"""

from .encoder import ChunkEncoder, Codec, select_codec
from .visualizer import VisualizationSampler

__all__ = [
    'ChunkEncoder',
    'Codec',
    'select_codec',
    'VisualizationSampler',
]
