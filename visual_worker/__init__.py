"""
Visual analysis worker.

Claims visual jobs, samples and publishes frames, scores them for
retention and asks a multimodal model for time-indexed visual events.
"""

__version__ = "0.1.0"
