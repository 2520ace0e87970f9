"""
Error Classifier - Configuration vs. System Failures

Decides whether a database error is the user's misconfiguration (bad privileges,
missing schema, rejected credentials, invalid identifiers) or an unexpected
system failure. Configuration errors are reclassified as ConfigurationError so
monitoring does not page on-call for them; everything else propagates untouched.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from ..exceptions import ConfigurationError

# Five characters, digits and upper-case letters (e.g. 42501, 3F000, 28P01)
_SQLSTATE_RE = re.compile(r"[0-9A-Z]{5}")


class ErrorClassifier:
    """
    Base classifier: never reclassifies.

    Dialects override ``classify`` (or use SqlStateErrorClassifier) to recognize
    their known error signatures.
    """

    def classify(self, error: BaseException) -> Optional[ConfigurationError]:
        """
        Inspect a database error.

        Args:
            error: The raised database error

        Returns:
            ConfigurationError with an actionable message, or None to let the
            original error propagate unchanged
        """
        return None


@dataclass(frozen=True)
class ErrorSignature:
    """
    A known configuration-error signature.

    Attributes:
        message: Actionable message shown to the user
        sqlstates: SQLSTATE codes that identify the error
        patterns: Regular expressions searched in the lower-cased error text
    """
    message: str
    sqlstates: Tuple[str, ...] = ()
    patterns: Tuple[str, ...] = ()

    def matches(self, sqlstate: Optional[str], error_text: str) -> bool:
        if sqlstate and sqlstate in self.sqlstates:
            return True
        return any(re.search(pattern, error_text) for pattern in self.patterns)


DEFAULT_SIGNATURES: Tuple[ErrorSignature, ...] = (
    ErrorSignature(
        message=("The destination user is missing privileges. Grant it permission to create schemas "
                 "and tables and to write to the target schema."),
        sqlstates=("42501",),
        patterns=(r"\bpermission denied\b", r"\binsufficient privilege\b", r"\baccess denied for user\b"),
    ),
    ErrorSignature(
        message=("The target schema does not exist and could not be created. Create the schema or "
                 "configure an existing one."),
        sqlstates=("3F000",),
        patterns=(r"\bschema \S+ does not exist\b", r"\binvalid schema name\b"),
    ),
    ErrorSignature(
        message="The destination rejected the configured credentials. Check the username and password.",
        sqlstates=("28000", "28P01"),
        patterns=(r"\bpassword authentication failed\b", r"\blogin failed for user\b"),
    ),
    ErrorSignature(
        message="The configured database does not exist. Check the database name.",
        sqlstates=("3D000",),
        patterns=(r"\bdatabase \S+ does not exist\b", r"\bcannot open database\b"),
    ),
    ErrorSignature(
        message="A schema or table name is not a valid identifier for the destination. Rename the stream or namespace.",
        sqlstates=("42602",),
        patterns=(r"\binvalid name syntax\b", r"\bidentifier is too long\b"),
    ),
)


class SqlStateErrorClassifier(ErrorClassifier):
    """
    Classifier driven by a table of known error signatures.

    Signatures are checked in order; the first match wins. SQLSTATE codes are
    read from a ``sqlstate``/``pgcode`` attribute or from pyodbc-shaped args
    ``(sqlstate, "[sqlstate] message")``. Patterns are word-anchored and
    matched against the lower-cased error text.
    """

    def __init__(self, signatures: Optional[Iterable[ErrorSignature]] = None,
                 include_defaults: bool = True):
        """
        Initialize the classifier.

        Args:
            signatures: Additional signatures, checked before the defaults
            include_defaults: Whether DEFAULT_SIGNATURES are appended
        """
        self.logger = logging.getLogger(__name__)
        self.signatures: List[ErrorSignature] = list(signatures or [])
        if include_defaults:
            self.signatures.extend(DEFAULT_SIGNATURES)

    def classify(self, error: BaseException) -> Optional[ConfigurationError]:
        sqlstate = self._extract_sqlstate(error)
        error_text = str(error).lower()
        for signature in self.signatures:
            if signature.matches(sqlstate, error_text):
                self.logger.debug(f"Classified {type(error).__name__} (sqlstate={sqlstate}) as configuration error")
                return ConfigurationError(signature.message, original_exception=error)
        return None

    @staticmethod
    def _extract_sqlstate(error: BaseException) -> Optional[str]:
        for attribute in ('sqlstate', 'pgcode'):
            value = getattr(error, attribute, None)
            if isinstance(value, str) and value:
                return value
        # pyodbc puts the SQLSTATE first and repeats it as the message prefix:
        # Error('42501', '[42501] ERROR: permission denied ...')
        args = getattr(error, 'args', ())
        if len(args) >= 2 and isinstance(args[0], str) and isinstance(args[1], str):
            sqlstate = args[0]
            if _SQLSTATE_RE.fullmatch(sqlstate) and args[1].startswith(f"[{sqlstate}]"):
                return sqlstate
        return None
