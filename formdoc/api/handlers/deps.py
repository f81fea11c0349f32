from __future__ import annotations

from dataclasses import dataclass

from formdoc.config import PublisherConfig
from formdoc.domain.use_cases.pipeline import SubmissionPipeline


@dataclass(frozen=True)
class ApiDeps:
    config: PublisherConfig
    pipeline: SubmissionPipeline
