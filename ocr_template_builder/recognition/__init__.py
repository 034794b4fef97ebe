"""Recognition provider boundary"""

from ocr_template_builder.recognition.client import ProgressTracker, RecognitionClient, RecognitionOptions

__all__ = ["ProgressTracker", "RecognitionClient", "RecognitionOptions"]
