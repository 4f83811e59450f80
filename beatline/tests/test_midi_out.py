import unittest
from unittest import mock

import mido

from beatline.midi_out import MidiOut, MidoSink, VirtualSink, bend_to_pitchwheel, clamp7
from beatline.note import Note


class TestNote(unittest.TestCase):
    def test_new_note_is_dirty_on(self):
        n = Note(60, 100, 0)
        self.assertTrue(n.on)
        self.assertTrue(n.on_tracker.is_dirty)
        self.assertFalse(n.velocity_tracker.is_dirty)

    def test_start_stop_report_change(self):
        n = Note(60, 100, 0)
        self.assertFalse(n.start())
        self.assertTrue(n.stop())
        self.assertFalse(n.stop())
        self.assertTrue(n.start())


class TestMidiOut(unittest.TestCase):
    def setUp(self):
        self.sink = VirtualSink()
        self.out = MidiOut(self.sink)

    def test_add_note_announces_immediately(self):
        n = self.out.add_note(Note(60, 100, 0))
        self.assertEqual(self.sink.events, [("on", 0, 60, 100)])
        self.assertFalse(n.on_tracker.is_dirty)
        self.out.update(5)
        self.assertEqual(len(self.sink.events), 1)

    def test_note_off_sent_on_next_update(self):
        n = self.out.add_note(Note(60, 100, 3))
        self.out.stop_notes(lambda x: x.pitch == 60)
        self.assertEqual(len(self.sink.of_type("off")), 0)
        self.out.update(5)
        self.assertEqual(self.sink.of_type("off"), [("off", 3, 60, 100)])
        self.assertEqual(self.out.notes, [])
        self.assertFalse(n.on)

    def test_overlap_masking(self):
        first = self.out.add_note(Note(60, 100, 0))
        self.out.update(5)
        second = self.out.add_note(Note(60, 90, 0))
        self.out.update(5)

        first.stop()
        self.out.update(5)
        self.assertEqual(self.sink.of_type("off"), [])
        self.assertEqual(self.out.get_metrics()["suppressed_note_off"], 1)

        second.stop()
        self.out.update(5)
        self.assertEqual(self.sink.of_type("off"), [("off", 0, 60, 90)])

    def test_duplicates_stopped_together_send_one_off(self):
        self.out.add_note(Note(60, 100, 0))
        self.out.update(5)
        self.out.add_note(Note(60, 90, 0))
        self.out.update(5)
        self.out.stop_notes(lambda n: n.pitch == 60)
        self.out.update(5)
        self.assertEqual(self.sink.of_type("off"), [("off", 0, 60, 90)])
        self.assertEqual(self.out.get_metrics()["suppressed_note_off"], 1)
        self.assertEqual(self.out.notes, [])

    def test_finish_with_duplicates_sends_one_off_each_pitch(self):
        self.out.add_note(Note(60, 100, 0))
        self.out.add_note(Note(60, 80, 0))
        self.out.add_note(Note(64, 70, 0))
        self.out.finish()
        self.assertEqual(self.sink.of_type("off"), [("off", 0, 60, 80), ("off", 0, 64, 70)])

    def test_other_channel_is_not_masked(self):
        first = self.out.add_note(Note(60, 100, 0))
        self.out.add_note(Note(60, 100, 1))
        first.stop()
        self.out.update(5)
        self.assertEqual(self.sink.of_type("off"), [("off", 0, 60, 100)])

    def test_note_turned_on_later_is_announced_on_update(self):
        n = Note(62, 80, 0)
        n.stop()
        n.on_tracker.accept()
        self.out.add_note(n)
        self.assertEqual(self.sink.events, [])
        n.start()
        self.out.update(5)
        self.assertEqual(self.sink.events, [("on", 0, 62, 80)])

    def test_velocity_change_sends_pressure(self):
        n = self.out.add_note(Note(60, 100, 0))
        n.velocity = 70
        self.out.update(5)
        self.assertEqual(self.sink.of_type("pressure"), [("pressure", 0, 60, 70)])
        self.out.update(5)
        self.assertEqual(len(self.sink.of_type("pressure")), 1)

    def test_cc_and_bend_forwarded(self):
        self.out.control_change(74, 64, 2)
        self.out.pitch_bend(-0.5, 1)
        self.assertEqual(self.sink.events, [("cc", 2, 74, 64), ("bend", 1, -0.5, 0)])
        m = self.out.get_metrics()
        self.assertEqual((m["msgs_cc"], m["msgs_bend"]), (1, 1))

    def test_finish_flushes_note_offs(self):
        self.out.add_note(Note(60, 100, 0))
        self.out.add_note(Note(64, 100, 0))
        finished = []
        self.out.on_finished.add(lambda d: finished.append(True))
        self.out.finish()
        self.assertEqual(len(self.sink.of_type("off")), 2)
        self.assertEqual(self.out.notes, [])
        self.assertTrue(self.out.finished)
        self.assertEqual(finished, [True])

    def test_without_sink_messages_are_dropped(self):
        out = MidiOut()
        n = out.add_note(Note(60, 100, 0))
        n.stop()
        out.update(5)
        out.control_change(1, 2, 0)
        self.assertEqual(out.get_metrics()["msgs_note_on"], 0)
        self.assertEqual(out.notes, [])


class TestMidoSink(unittest.TestCase):
    def test_value_helpers(self):
        self.assertEqual(clamp7(130), 127)
        self.assertEqual(clamp7(-3), 0)
        self.assertEqual(clamp7(63.6), 64)
        self.assertEqual(bend_to_pitchwheel(1.0), 8191)
        self.assertEqual(bend_to_pitchwheel(-2.0), -8192)
        self.assertEqual(bend_to_pitchwheel(0), 0)

    def test_messages_sent_to_port(self):
        port = mock.Mock()
        sink = MidoSink(port)
        sink.note_on(1, 60, 100.4)
        sink.note_off(1, 60)
        sink.note_pressure(1, 60, 50)
        sink.control_change(2, 74, 200)
        sink.pitch_bend(0, 0.5)
        sent = [c.args[0] for c in port.send.call_args_list]
        self.assertEqual(sent, [
            mido.Message("note_on", note=60, velocity=100, channel=1),
            mido.Message("note_off", note=60, velocity=0, channel=1),
            mido.Message("polytouch", note=60, value=50, channel=1),
            mido.Message("control_change", control=74, value=127, channel=2),
            mido.Message("pitchwheel", pitch=4096, channel=0),
        ])

    def test_panic_covers_all_channels(self):
        port = mock.Mock()
        MidoSink(port).panic()
        sent = [c.args[0] for c in port.send.call_args_list]
        self.assertEqual(len(sent), 48)
        self.assertEqual({m.channel for m in sent}, set(range(16)))
        self.assertEqual({m.control for m in sent}, {64, 120, 123})

    def test_midi_out_through_mido_sink(self):
        port = mock.Mock()
        out = MidiOut(MidoSink(port))
        out.add_note(Note(48, 90, 9)).stop()
        out.update(5)
        types = [c.args[0].type for c in port.send.call_args_list]
        self.assertEqual(types, ["note_on", "note_off"])
