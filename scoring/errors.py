class AnalysisError(Exception):
    """Base class for failures raised by the scoring pipeline"""

    pass


class MalformedUpstreamOutput(AnalysisError):
    """The model output is not JSON or lacks the `features` / `overall` shape"""

    pass


class LeverRangeViolation(AnalysisError):
    """A delta names an unknown lever or falls outside the lever's range.

    Recorded as a diagnostic by the potential calculator; the offending delta
    is dropped and the pipeline keeps going.
    """

    def __init__(self, lever: str, delta: float, allowed=None):
        self.lever = lever
        self.delta = delta
        self.allowed = allowed
        if allowed is None:
            msg = f"unknown lever '{lever}' (delta {delta})"
        else:
            msg = f"delta {delta} for lever '{lever}' outside [{allowed[0]}, {allowed[1]}]"
        super().__init__(msg)


class SchemaViolation(AnalysisError):
    """The response cannot satisfy the output schema even after defaulting"""

    pass
