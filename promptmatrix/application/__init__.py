from .generate_response import CandidateClient
from .judge import Judge
from .run_suite import RunState, RunSuite, RunSuiteError

__all__ = [
    "CandidateClient",
    "Judge",
    "RunState",
    "RunSuite",
    "RunSuiteError",
]
