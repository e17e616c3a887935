"""
Respondent identity resolution.

Submissions carry up to three identity fields (mobile, code, name), any of
which may be missing. The grouping key picks the first usable one so that all
submissions from one field worker land in the same group.
"""

from surveyreview.core.schema import Response

UNKNOWN_KEY_PREFIX = "unknown-"


def resolve_key(response: Response) -> str:
    """Return the grouping key for a response.

    Precedence: mobile number, then respondent code, then a key synthesized
    from the (possibly empty) name. Never fails.
    """
    if response.user_mobile:
        return str(response.user_mobile)
    if response.user_code:
        return str(response.user_code)
    return f"{UNKNOWN_KEY_PREFIX}{response.user_name or ''}"


def display_name(response: Response, default: str = "Unknown") -> str:
    """Name shown for a respondent: name, else code, else ``default``."""
    return response.user_name or response.user_code or default
