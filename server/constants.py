"""Centralized constants for the UCM PBX JSON API.

Single source of truth for action names, status codes and cache namespaces
shared by the services and routers.
"""

# =============================================================================
# REMOTE ACTIONS
# =============================================================================

ACTION_CHALLENGE = 'challenge'
ACTION_LOGIN = 'login'
ACTION_LOGOUT = 'logout'
ACTION_CALL = 'call'
ACTION_CDR = 'cdrapi'
ACTION_RECORDING = 'recapi'

# =============================================================================
# REMOTE STATUS
# =============================================================================

# Any other integer is a vendor-specific failure code and is treated as opaque
UCM_STATUS_SUCCESS = 0

# Reported in the nested auto-login outcome when the request never completed
AUTO_LOGIN_TRANSPORT_FAILURE = -1

# =============================================================================
# CACHE NAMESPACES
# =============================================================================

RECORDING_CACHE_NAMESPACE = 'recording'
CDR_COOKIE_CACHE_NAMESPACE = 'cdr_cookie'

DEFAULT_RECORDING_CONTENT_TYPE = 'audio/wav'
DEFAULT_CDR_FORMAT = 'json'
