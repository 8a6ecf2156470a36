"""
Version constants for the forum inline editing service.
"""

# API Version
API_VERSION = "1.0.0"

# Component versions (update these when implementations change)
BLOCKQUOTE_PLUGIN_VERSION = "atto-blockquote-1.0.0"
INLINE_FORM_VERSION = "post-inline-form-1.0.0"
SERVICE_VERSION = "forum-service-1.0.0"


def get_component_versions() -> dict:
    """
    Get the versions of the individual components.

    Returns:
        Mapping of component name to version string
    """
    return {
        "blockquote_plugin": BLOCKQUOTE_PLUGIN_VERSION,
        "inline_form": INLINE_FORM_VERSION,
        "service": SERVICE_VERSION,
    }
