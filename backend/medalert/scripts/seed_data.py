"""Module: seed_data."""

from faker import Faker
import random
import string
import uuid
from datetime import timedelta
from sqlalchemy import delete, select

from medalert.core.clock import utcnow
from medalert.db.init_db import init_db
from medalert.db.session import SessionLocal

from medalert.db.adapters import store_streak
from medalert.db.models.user import User
from medalert.db.models.user_device import UserDevice
from medalert.db.models.medication import Medication
from medalert.db.models.schedule_slot import UPCOMING, ScheduleSlot
from medalert.db.models.dose_event import DoseEvent
from medalert.db.models.streak import Streak
from medalert.db.models.inventory import MedicationInventory
from medalert.db.models.refill_log import RefillLog
from medalert.db.models.notification_log import NotificationLog
from medalert.domain.streaks import StreakState
from medalert.services.schedules import build_slots
from medalert.services.transitions import DoseTransitionService

fake = Faker()

# name, dosage, instructions, frequency, frequency_value, times
MEDICATION_POOL = [
    ("Metformin", "500 mg", "Take with meals", "twice_daily", None, []),
    ("Lisinopril", "10 mg", "Take in the morning", "daily", None, []),
    ("Atorvastatin", "20 mg", "Take at night", "specific_times", None, ["21:00"]),
    ("Levothyroxine", "50 mcg", "Take on an empty stomach", "specific_times", None, ["06:30"]),
    ("Amoxicillin", "250 mg", "Finish the full course", "thrice_daily", None, []),
    ("Ibuprofen", "200 mg", "Take with food", "every_x_hours", 6, []),
    ("Vitamin D", "1000 IU", None, "weekly", None, []),
    ("Omeprazole", "20 mg", "Before breakfast", "custom", None, ["07:00", "19:00"]),
    ("Insulin glargine", "12 units", "Inject subcutaneously", "specific_times", None, ["08:00", "20:00"]),
]

# Weighted dose outcomes used to build a plausible history.
OUTCOMES = (["take"] * 8) + ["skip", "miss"]


# Shared helpers used by multiple seed builders.
def generate_e164_mobile() -> str:
    # AU mobile in E.164: +614 + 8 digits
    return "+614" + "".join(random.choice(string.digits) for _ in range(8))


def reset_db(session) -> None:
    # Keep reset order explicit so FK dependencies clear cleanly.
    for model in (
        NotificationLog,
        RefillLog,
        DoseEvent,
        Streak,
        MedicationInventory,
        ScheduleSlot,
        Medication,
        UserDevice,
        User,
    ):
        session.execute(delete(model))
    session.commit()


def seed_users(session, n: int = 20) -> list[User]:
    users: list[User] = []
    for _ in range(n):
        channels = random.choice([["email"], ["email", "sms"], ["push"], ["email", "device"]])
        users.append(User(
            email=fake.unique.email(),
            full_name=fake.name(),
            phone=generate_e164_mobile(),
            push_token=uuid.uuid4().hex if "push" in channels else None,
            notification_preferences={
                "channels": channels,
                "confirm_taken": random.random() < 0.5,
                "missed_dose": True,
                "refill_alerts": True,
            },
        ))
    session.add_all(users)
    session.commit()
    return users


def seed_devices(session, users: list[User]) -> int:
    devices: list[UserDevice] = []
    for user in users:
        if "device" in (user.notification_preferences or {}).get("channels", []):
            devices.append(
                UserDevice(
                    user_id=user.user_id,
                    device_id=f"esp32-{fake.unique.hexify(text='^^^^^^')}",
                    device_name=f"{user.full_name.split()[0]}'s pillbox",
                    device_type="esp32",
                    device_endpoint=None,
                    is_active=True,
                )
            )
    session.add_all(devices)
    session.commit()
    return len(devices)


def seed_medications(session, users: list[User], history_days: int = 14) -> list[Medication]:
    start = utcnow().replace(second=0, microsecond=0) - timedelta(days=history_days)
    meds: list[Medication] = []
    for user in users:
        for name, dosage, instructions, frequency, value, times in random.sample(MEDICATION_POOL, k=random.randint(1, 3)):
            med = Medication(
                medication_id=uuid.uuid4(),
                user_id=user.user_id,
                name=name,
                dosage=dosage,
                instructions=instructions,
                with_food="food" in (instructions or "").lower() or "meal" in (instructions or "").lower(),
                frequency=frequency,
                frequency_value=value,
                start_date=start.date(),
                end_date=fake.date_between(start_date="+1m", end_date="+6m") if random.random() < 0.3 else None,
                active=True,
            )
            slots = build_slots(med, times, start)
            session.add(med)
            session.flush()
            session.add_all(slots)
            session.add(store_streak(Streak(medication_id=med.medication_id), StreakState()))
            if random.random() < 0.7:
                quantity = random.choice([30, 60, 90])
                session.add(
                    MedicationInventory(
                        medication_id=med.medication_id,
                        current_quantity=quantity,
                        dose_amount=1,
                        refill_threshold=quantity // 5,
                        unit="tablets",
                        pharmacy_info=fake.company() + " Pharmacy",
                        total_refilled=0,
                        refill_reminder_sent=False,
                    )
                )
            meds.append(med)
    session.commit()
    return meds


def seed_history(session, meds: list[Medication], max_doses: int = 60) -> int:
    # Dose history is played through the transition service so streaks and stock stay consistent.
    clock = {"now": utcnow()}
    engine = DoseTransitionService(session, clock=lambda: clock["now"])
    now = utcnow()
    n = 0
    for med in meds:
        for _ in range(max_doses):
            slot = session.execute(
                select(ScheduleSlot).where(
                    ScheduleSlot.medication_id == med.medication_id,
                    ScheduleSlot.next_reminder_at.is_not(None),
                )
            ).scalar_one_or_none()
            if slot is None or slot.next_reminder_at >= now:
                break

            due = slot.next_reminder_at
            if slot.status != UPCOMING:
                # What the sweep would do once the next dose comes due.
                engine.reset(slot.slot_id, now=due)
            clock["now"] = due + timedelta(minutes=random.randint(0, 45))
            outcome = random.choice(OUTCOMES)
            if outcome == "take":
                engine.take(slot.slot_id, actual_time=clock["now"])
            elif outcome == "skip":
                engine.skip(slot.slot_id, reason=random.choice(["Felt unwell", "Ran out", "Forgot to pack it"]))
            else:
                engine.miss(slot.slot_id)
                engine.advance_missed(slot.slot_id, now=due)
            n += 1
    return n


if __name__ == "__main__":
    # Full reseed pipeline: python -m medalert.scripts.seed_data
    init_db()
    session = SessionLocal()
    try:
        print("Resetting tables...")
        reset_db(session)

        print("Seeding users (20)...")
        users = seed_users(session, 20)

        print("Seeding reminder devices...")
        device_n = seed_devices(session, users)

        print("Seeding medications + schedules + inventory...")
        meds = seed_medications(session, users)

        print("Seeding dose history (14 days)...")
        event_n = seed_history(session, meds)

        print(f"Done. users={len(users)}, devices={device_n}, medications={len(meds)}, dose_events={event_n}")
    finally:
        session.close()
