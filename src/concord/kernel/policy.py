"""Agreement policy model."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from concord.errors import InvalidPolicy

DEFAULT_THRESHOLD = 2
DEFAULT_MIN_PLATFORMS = 2


class ConsensusPolicy(BaseModel):
    """How many platforms must agree, and how.

    Strict mode (require_all_match) demands a single checksum value across
    every reporting platform; threshold mode demands a unique largest bloc of
    at least ``threshold`` platforms. Both apply the ``min_platforms`` floor:
    a lone platform is never evidence of cross-platform agreement.
    """
    threshold: int = DEFAULT_THRESHOLD
    require_all_match: bool = False
    min_platforms: int = DEFAULT_MIN_PLATFORMS
    allow_partial: bool = False  # threshold mode: pass if any combination agreed
    expected_platforms: Optional[int] = None  # upper bound on platforms that could ever report

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def validate_bounds(self) -> "ConsensusPolicy":
        if self.threshold < 1:
            raise ValueError(f"threshold must be >= 1, got {self.threshold}")
        if self.min_platforms < 1:
            raise ValueError(f"min_platforms must be >= 1, got {self.min_platforms}")
        if self.expected_platforms is not None:
            if self.expected_platforms < 1:
                raise ValueError(f"expected_platforms must be >= 1, got {self.expected_platforms}")
            if not self.require_all_match and self.threshold > self.expected_platforms:
                raise ValueError(
                    f"threshold {self.threshold} can never be met by "
                    f"{self.expected_platforms} expected platform(s)"
                )
            if self.min_platforms > self.expected_platforms:
                raise ValueError(
                    f"min_platforms {self.min_platforms} can never be met by "
                    f"{self.expected_platforms} expected platform(s)"
                )
        return self

    @property
    def mode(self) -> str:
        return "strict" if self.require_all_match else "threshold"

    def describe(self) -> Dict[str, Any]:
        """Policy parameters as they appear in the consensus report."""
        return {
            "threshold": self.threshold,
            "require_all_match": self.require_all_match,
            "min_platforms": self.min_platforms,
            "allow_partial": self.allow_partial,
        }


def validate_policy(policy: ConsensusPolicy) -> ConsensusPolicy:
    """Re-check a policy (model_construct() skips validation)."""
    return build_policy(**policy.model_dump())


def build_policy(**values: Any) -> ConsensusPolicy:
    """Construct a policy, surfacing validation failures as InvalidPolicy."""
    try:
        return ConsensusPolicy(**{k: v for k, v in values.items() if v is not None})
    except ValidationError as e:
        messages = "; ".join(err["msg"] for err in e.errors())
        raise InvalidPolicy(f"Invalid consensus policy: {messages}") from e
