# Services module

from timeclock.services.backend_client import KioskBackendClient
from timeclock.services.kiosk_session import KioskSession
from timeclock.services.session_clock import SessionClock
from timeclock.services.timers import AsyncioScheduler, NamedTimers
from timeclock.services.wake_lock import WakeLockManager, detect_wake_lock_provider
