from slowapi import Limiter
from slowapi.util import get_remote_address
from leavedesk.core.config import settings

# Disabled under test so repeated logins from TestClient are not throttled
limiter = Limiter(key_func=get_remote_address, enabled=not settings.is_testing)
