"""Feature gating utilities coordinating premium access checks."""
from .content import ContentKind, GatedContent
from .context import AccessContext
from .enforcement import has_access, require_access
from .exceptions import FeatureGateError

__all__ = [
    "AccessContext",
    "ContentKind",
    "FeatureGateError",
    "GatedContent",
    "has_access",
    "require_access",
]
