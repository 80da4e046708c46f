# backend/medalert/db/models/__init__.py

from medalert.db.models.user import User
from medalert.db.models.user_device import UserDevice
from medalert.db.models.medication import Medication
from medalert.db.models.schedule_slot import ScheduleSlot

from medalert.db.models.dose_event import DoseEvent
from medalert.db.models.streak import Streak
from medalert.db.models.inventory import MedicationInventory
from medalert.db.models.refill_log import RefillLog
from medalert.db.models.notification_log import NotificationLog
