"""Certification lifecycle: started -> eligible -> certified.

Pure transition rules, no I/O. The services apply the results to rows.

- started -> eligible when every criterion is satisfied (idempotent)
- eligible -> certified only via an explicit issuance request, re-validated
  against current data; eligibility never self-certifies
- nothing ever moves backwards; a regression after ``eligible`` is caught by
  the re-validation at issuance instead of reverting the state
- eligible and certified records always report 100%
"""

from dataclasses import dataclass

from models import CertificationState
from services.errors import NotEligible

_SETTLED = (CertificationState.ELIGIBLE, CertificationState.CERTIFIED)


@dataclass(frozen=True)
class Transition:
    state: CertificationState
    completion_pct: int
    changed: bool


def apply_progress(
    state: CertificationState,
    completion_pct: int,
    all_satisfied: bool,
) -> Transition:
    """Apply a recomputed progress result to the current state."""
    if state in _SETTLED:
        return Transition(state=state, completion_pct=100, changed=False)

    if all_satisfied:
        return Transition(
            state=CertificationState.ELIGIBLE,
            completion_pct=100,
            changed=True,
        )

    return Transition(
        state=CertificationState.STARTED,
        completion_pct=min(completion_pct, 99),
        changed=False,
    )


def begin_issuance(
    certification_id: int,
    state: CertificationState,
    completion_pct: int,
    all_satisfied: bool,
) -> list[CertificationState]:
    """States an issuance passes through, in order.

    A started record that is satisfied right now still goes through eligible.

    Raises:
        NotEligible: current data does not satisfy every criterion.
        ValueError: the record is already certified; the issuer returns the
            existing certificate before asking.
    """
    if state == CertificationState.CERTIFIED:
        raise ValueError(f"Certification {certification_id} is already certified")

    if not all_satisfied:
        raise NotEligible(certification_id, min(completion_pct, 99))

    if state == CertificationState.STARTED:
        return [CertificationState.ELIGIBLE, CertificationState.CERTIFIED]
    return [CertificationState.CERTIFIED]
