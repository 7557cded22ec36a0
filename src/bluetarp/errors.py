from __future__ import annotations


class InvalidArgument(ValueError):
    """Bad fold arguments, unknown model names or a malformed input table."""


class FitError(RuntimeError):
    """A model could not be fitted or scored on one cross-validation fold.

    ``model`` and ``fold`` are filled in by the cross-validator when the error
    escapes an adapter, so callers always see which fold broke the run.
    """

    def __init__(self, message: str, model: str | None = None, fold: int | None = None) -> None:
        self.message = message
        self.model = model
        self.fold = fold
        super().__init__(self._render())

    def _render(self) -> str:
        where = []
        if self.model is not None:
            where.append(f"model={self.model}")
        if self.fold is not None:
            where.append(f"fold={self.fold}")
        if not where:
            return self.message
        return f"{self.message} ({', '.join(where)})"


class MetricsError(ValueError):
    """Metrics requested with an invalid threshold or inconsistent inputs."""
