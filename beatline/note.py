from __future__ import annotations

from typing import Optional

from beatline.property_tracker import ChangeTracker


class Note:
    """A playable note: pitch and channel, plus tracked velocity and on/off state.

    A new note is dirty-on (committed off, current on) until an output
    announces it.
    """

    def __init__(self, pitch: int, velocity: float, channel: int, ref: Optional[str] = None) -> None:
        self.pitch = int(pitch)
        self.channel = int(channel)
        self.ref = ref
        self.velocity_tracker: ChangeTracker[float] = ChangeTracker(velocity)
        self.on_tracker: ChangeTracker[bool] = ChangeTracker(False)
        self.on_tracker.value = True

    @property
    def velocity(self) -> float:
        return self.velocity_tracker.value

    @velocity.setter
    def velocity(self, value: float) -> None:
        self.velocity_tracker.value = value

    @property
    def on(self) -> bool:
        return self.on_tracker.value

    @on.setter
    def on(self, value: bool) -> None:
        self.on_tracker.value = bool(value)

    def start(self) -> bool:
        """Turn the note on; False if it already was."""
        if self.on:
            return False
        self.on = True
        return True

    def stop(self) -> bool:
        """Turn the note off; False if it already was."""
        if not self.on:
            return False
        self.on = False
        return True

    def __repr__(self) -> str:
        return f"Note(pitch={self.pitch}, velocity={self.velocity}, channel={self.channel}, on={self.on})"
