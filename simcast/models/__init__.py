from simcast.models.upload import Upload, UploadStatus
from simcast.models.metric_snapshot import MetricSnapshot

__all__ = [
    "Upload",
    "UploadStatus",
    "MetricSnapshot",
]
