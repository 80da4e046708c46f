from fastapi import FastAPI
from datetime import datetime, timezone

app = FastAPI(title="Mock Notification Gateway", version="0.1.0")

# Everything received since start-up, newest last; handy when poking at the backend locally.
OUTBOX: list[dict] = []


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _accept(channel: str, payload: dict) -> dict:
    entry = {"channel": channel, "received": payload, "processed_at": _now()}
    OUTBOX.append(entry)
    return {"ack": True, "message": f"Simulated {channel} delivery", **entry}


@app.get("/ping")
def ping():
    return {"status": "ok", "service": "mock-notify", "time": _now()}

@app.post("/email")
def send_email(payload: dict):
    return _accept("email", payload)

@app.post("/sms")
def send_sms(payload: dict):
    return _accept("sms", payload)

@app.post("/push")
def send_push(payload: dict):
    return _accept("push", payload)

@app.post("/device/publish")
def publish_to_device(payload: dict):
    # Stands in for the MQTT relay to ESP32 pillboxes.
    return _accept("device", payload)

@app.get("/outbox")
def outbox(limit: int = 50):
    return OUTBOX[-limit:]
