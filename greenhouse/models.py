import json
from dataclasses import dataclass


@dataclass
class Reading:
    """Represents a single greenhouse reading."""
    greenhouse_id: str
    temperature: float | None
    humidity: float | None
    timestamp: int

    @property
    def complete(self) -> bool:
        return self.temperature is not None and self.humidity is not None

    def to_dict(self) -> dict:
        return {
            "greenhouseId": self.greenhouse_id,
            "temperature": self.temperature,
            "humidity": self.humidity,
            "timestamp": self.timestamp,
        }

    def to_payload(self) -> str:
        """Serialize to the JSON payload published on the broker."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_payload(cls, payload: str | bytes) -> "Reading":
        """
        Parse a published payload.
        Raises ValueError when the payload is not a reading object.
        """
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")
        data = json.loads(payload)
        if not isinstance(data, dict):
            raise ValueError(f"Reading payload is not an object: {payload!r}")
        temperature = data.get("temperature")
        humidity = data.get("humidity")
        try:
            return cls(
                greenhouse_id=str(data["greenhouseId"]),
                temperature=float(temperature) if temperature is not None else None,
                humidity=float(humidity) if humidity is not None else None,
                timestamp=int(data["timestamp"]),
            )
        except KeyError as e:
            raise ValueError(f"Reading payload missing field {e}") from e
        except TypeError as e:
            raise ValueError(f"Reading payload has a bad field: {e}") from e
