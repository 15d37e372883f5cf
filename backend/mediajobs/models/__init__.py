from mediajobs.models.job import Job, JobStatus, MediaOutput, MediaType, WaitingStrategy
from mediajobs.models.job_record import MediaJobRecord

__all__ = [
    "Job",
    "JobStatus",
    "MediaJobRecord",
    "MediaOutput",
    "MediaType",
    "WaitingStrategy",
]
