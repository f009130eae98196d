# models.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

@dataclass
class CommandResult:
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    def __str__(self):
        return f"CommandResult(exit_code={self.exit_code}, stdout={self.stdout!r}, stderr={self.stderr!r})"

@dataclass
class PollRecord:
    run_id: str
    job_id: str
    phase: str   # scheduled | exit
    iteration: int
    exit_code: int
    state: str
    observed_at: str = field(default_factory=lambda: datetime.utcnow().isoformat())

@dataclass
class RedefinitionResult:
    succeeded: bool
    error_type: Optional[str] = None
    message: Optional[str] = None

    def describe(self):
        if self.succeeded:
            return "Transformation succeeded"
        return f"Transformation error : {self.error_type}({self.message})"
