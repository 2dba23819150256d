import logging
from typing import List, Optional


logger = logging.getLogger(__name__)


class ErrorCollector:
    """
    Ordered record of everything that went wrong during one backup run.

    Errors are logged the moment they are recorded. The executor consults
    the collector twice: before retention (any error blocks deletion) and
    when reporting at the end of the run.
    """

    def __init__(self):
        self._errors: List[BaseException] = []

    def record(self, error: BaseException):
        """Append an error and log it."""
        self._errors.append(error)
        logger.error(str(error))

    def record_if_present(self, error: Optional[BaseException]):
        """Record ``error`` unless it is None."""
        if error is not None:
            self.record(error)

    @property
    def errors(self) -> List[BaseException]:
        return list(self._errors)

    @property
    def has_errors(self) -> bool:
        return bool(self._errors)

    def messages(self) -> List[str]:
        return [str(error) for error in self._errors]

    def __len__(self) -> int:
        return len(self._errors)
