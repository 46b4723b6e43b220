from .db import db
from .user import User, Role, user_roles
from .audit_log import AuditLog
from .court import Court
from .booking import Booking
from .blocked_slot import BlockedSlot
from .slot_lock import SlotLock
from .slot_guard import SlotGuard
from .pricing_rule import PricingRule
from .holiday import Holiday
