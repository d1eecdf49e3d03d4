"""
pagebridge/data_models/lifecycle.py

Page lifecycle state for one session.

Contains:
- NavigationFailureDetails: reason/code/description of a failed load
- LifecycleRecord: flags derived from host navigation events
"""

from pydantic import BaseModel, Field

from pagebridge.utils.exceptions import NavigationFailure


# Chromium net error for an engine-initiated abort (e.g. a superseded navigation)
ABORTED_ERROR_CODE = -3
FAILED_TO_LOAD_REASON = "failed to load page"


class NavigationFailureDetails(BaseModel):
    """A load failure reported by the host."""
    reason: str = Field(default=FAILED_TO_LOAD_REASON, description="Short human readable reason")
    code: int = Field(description="Chromium net error code (negative)")
    description: str = Field(default="", description="Host supplied error description, e.g. net::ERR_NAME_NOT_RESOLVED")
    url: str | None = Field(default=None, description="URL whose load failed, if known")

    @property
    def is_abort(self) -> bool:
        """Whether this is the engine-initiated abort that never surfaces as a failure."""
        return self.code == ABORTED_ERROR_CODE

    def to_exception(self) -> NavigationFailure:
        return NavigationFailure(
            reason=self.reason,
            code=self.code,
            description=self.description,
            url=self.url,
        )


class LifecycleRecord(BaseModel):
    """
    Lifecycle flags of the current navigation.

    A navigation start replaces the record with a fresh one; within one navigation
    dom_ready and finish_loaded only ever go from False to True.
    """
    dom_ready: bool = Field(default=False, description="DOMContentLoaded fired for the current document")
    finish_loaded: bool = Field(default=False, description="load fired for the current document")
    fatal_error: NavigationFailureDetails | None = Field(
        default=None,
        description="Last non-abort load failure since the navigation started"
    )
