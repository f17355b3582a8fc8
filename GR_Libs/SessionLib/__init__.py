"""
SessionLib - Editing session and persisted settings

This module provides the settings store and the editor session that
drives decode, mask painting, transforms, encoding and undo.
"""

from GR_Libs.SessionLib.settings_store import (
    BlurSettings,
    GifSettings,
    SessionConfig,
    default_settings_path,
    load_session_config,
    save_session_config,
)
from GR_Libs.SessionLib.editor_session import (
    EditorSession,
    PendingLoad,
    RequestTracker,
    SessionState,
)

__all__ = [
    "BlurSettings",
    "GifSettings",
    "SessionConfig",
    "default_settings_path",
    "load_session_config",
    "save_session_config",
    "EditorSession",
    "PendingLoad",
    "RequestTracker",
    "SessionState",
]
