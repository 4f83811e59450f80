from __future__ import annotations

from beatline.events import Event, MessageEventData
from beatline.midi_out import MessageSink


class MidiBus(MessageSink):
    """A sink that re-publishes everything it receives as events.

    Several MidiOuts can share one bus; listeners then route, filter or
    transform the traffic (e.g. forward into another MidiOut's sink).
    Every message fires `on_message` first, then its type-specific event.
    Returning True from an `on_message` handler stops both.
    """

    def __init__(self) -> None:
        self.on_message = Event()
        self.on_note_on = Event()
        self.on_note_off = Event()
        self.on_note_pressure = Event()
        self.on_control_change = Event()
        self.on_pitch_bend = Event()
        self._by_type = {
            "note_on": self.on_note_on,
            "note_off": self.on_note_off,
            "polytouch": self.on_note_pressure,
            "control_change": self.on_control_change,
            "pitchwheel": self.on_pitch_bend,
        }

    def send(self, msg) -> None:
        data = MessageEventData(self, msg)
        if self.on_message.trigger(data):
            return
        event = self._by_type.get(msg.type)
        if event is not None:
            event.trigger(data)
