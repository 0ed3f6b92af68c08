"""Quiz assessment service: authoring, attempts, grading and reports."""

__all__ = ["app", "attempts", "authoring", "errors", "lifecycle", "metrics", "models", "randomizer", "reports", "repo", "routes", "scorer"]
