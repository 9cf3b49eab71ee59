"""Exceptions raised by the certification engine.

Routes translate these into HTTP responses; nothing here is fatal to the
service as a whole.
"""


class UnsupportedCriterionKind(Exception):
    """Raised when a criterion's kind is not one the evaluator understands.

    The aggregator degrades such a criterion to unsatisfied and logs a warning.
    """

    def __init__(
        self,
        kind: str,
        criterion_id: int | None = None,
        reason: str | None = None,
    ):
        self.kind = kind
        self.criterion_id = criterion_id
        self.reason = reason
        message = f"Unsupported criterion kind: {kind!r}"
        super().__init__(f"{message} ({reason})" if reason else message)


class EmptyCertificationType(Exception):
    """Raised when a certification type has no criteria (configuration error)."""

    def __init__(self, certification_type_id: int | None = None, name: str = ""):
        self.certification_type_id = certification_type_id
        self.name = name
        label = name or certification_type_id
        super().__init__(f"Certification type {label!r} has no criteria")


class NotEligible(Exception):
    """Raised when issuance is requested before all criteria are satisfied."""

    def __init__(self, certification_id: int, completion_pct: int):
        self.certification_id = certification_id
        self.completion_pct = completion_pct
        super().__init__(
            f"Certification {certification_id} is not eligible: "
            f"{completion_pct}% complete"
        )


class DuplicateIssuanceRace(Exception):
    """Another issuance attempt for the same certification won the race.

    Internal only: the issuer retries by re-reading state.
    """

    def __init__(self, certification_id: int):
        self.certification_id = certification_id
        super().__init__(f"Concurrent issuance for certification {certification_id}")


class CertificationNotFound(Exception):
    """Raised when a certification id does not exist."""

    def __init__(self, certification_id: int):
        self.certification_id = certification_id
        super().__init__(f"Certification {certification_id} not found")


class CertificateNotFound(Exception):
    """Raised when attaching an artifact to an unknown certificate id."""

    def __init__(self, certificate_id: str):
        self.certificate_id = certificate_id
        super().__init__(f"Certificate {certificate_id} not found")


class IssuanceRecordMissing(Exception):
    """A certification is certified but its issuance log entry is absent.

    Data integrity fault: the certified state is only ever written together
    with the issuance record.
    """

    def __init__(self, certification_id: int):
        self.certification_id = certification_id
        super().__init__(
            f"Certification {certification_id} is certified "
            "but has no issuance record"
        )
