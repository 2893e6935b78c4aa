"""
Pipeline-level exceptions.

Stage failures are captured in the processing report and never raised
from a graceful run. These exceptions cover the cases that do escape.
"""


class PipelineError(Exception):
    """Base exception for pipeline errors."""

    pass


class ConfigurationError(PipelineError):
    """Raised when a pipeline configuration is malformed."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid pipeline configuration: {reason}")


class PipelinePartialFailure(PipelineError):
    """Raised in strict mode when any enabled stage failed."""

    def __init__(self, report):
        self.report = report
        failed = [
            result.stage_name.value
            for result in report.step_details
            if result.status.value == "failed"
        ]
        super().__init__(
            f"{len(failed)} of {report.total_steps} stages failed: {', '.join(failed)}"
        )
