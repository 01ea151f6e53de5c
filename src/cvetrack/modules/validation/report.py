"""Validation report models."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ValidationIssue:
    """A single violation: where it is, what is wrong, which rule caught it."""

    path: str
    message: str
    rule: str


@dataclass
class ValidationReport:
    """Outcome of validating one document. Every violation is listed."""

    valid: bool
    errors: list[ValidationIssue] = field(default_factory=list)

    def error_paths(self) -> list[str]:
        return [issue.path for issue in self.errors]

    def has_error_at(self, path: str) -> bool:
        """True if an error was reported at ``path`` or anywhere below it."""
        return any(
            issue.path == path or issue.path.startswith((f"{path}.", f"{path}["))
            for issue in self.errors
        )

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "errors": [
                {"path": issue.path, "message": issue.message, "rule": issue.rule}
                for issue in self.errors
            ],
        }


class IssueCollector:
    """Accumulates issues during a single validation run."""

    def __init__(self):
        self.issues: list[ValidationIssue] = []

    def add(self, path: str, message: str, rule: str) -> None:
        self.issues.append(ValidationIssue(path=path or "$", message=message, rule=rule))

    def report(self) -> ValidationReport:
        return ValidationReport(valid=not self.issues, errors=list(self.issues))


def join_path(path: str, key: str) -> str:
    """Append an object key to a dotted path."""
    return f"{path}.{key}" if path else key


def index_path(path: str, index: int) -> str:
    """Append an array index to a dotted path."""
    return f"{path}[{index}]"
