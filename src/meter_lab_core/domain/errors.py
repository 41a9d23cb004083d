"""
Domain Errors

Exception taxonomy shared by the recognition lab components.
"""

from __future__ import annotations


class MeterLabError(Exception):
    """Base class for all recognition lab errors"""
    pass


class DecodeError(MeterLabError):
    """Image bytes could not be decoded (non-fatal: skip the step)"""
    pass


class ParseError(MeterLabError):
    """Inference response did not contain a usable JSON object"""

    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw


class TransportError(MeterLabError):
    """The vision-inference collaborator was unreachable or errored"""
    pass


class InvalidTransitionError(MeterLabError):
    """A lifecycle transition is not allowed from the current status"""

    def __init__(self, entity: str, current: str, target: str) -> None:
        super().__init__(f"{entity} cannot move from '{current}' to '{target}'")
        self.entity = entity
        self.current = current
        self.target = target


class InsufficientSamplesError(MeterLabError):
    """Folder holds fewer photos than required to start testing"""

    def __init__(self, photo_count: int, min_required: int) -> None:
        super().__init__(
            f"Folder has {photo_count} photo(s); at least {min_required} are required to start testing"
        )
        self.photo_count = photo_count
        self.min_required = min_required


class NotEligibleError(MeterLabError):
    """Promotion attempted without meeting every eligibility condition"""

    def __init__(self, unmet: list[str]) -> None:
        super().__init__(f"Folder is not eligible for promotion (unmet: {', '.join(unmet)})")
        self.unmet = unmet


class NotFoundError(MeterLabError):
    """Requested entity does not exist in the store"""

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id
