import unittest

from beatline.clip import Clip
from beatline.clip_player import ClipPlayer
from beatline.cue import Cue
from beatline.midi_out import MidiOut, VirtualSink
from beatline.time_base import TimeBase
from beatline.time_sig import QuarterNoteTimeSignature, TimeSignature


class TestTimeBaseAdvance(unittest.TestCase):
    def test_common_time_bar_rollover(self):
        tb = TimeBase(60, TimeSignature([1, 1, 1, 1], 4))
        tb.update(1000)
        self.assertAlmostEqual(tb.total_beat, 1.0)
        self.assertEqual(tb.bar, 1)
        tb.update(3000)
        self.assertEqual(tb.bar, 2)
        self.assertAlmostEqual(tb.bar_beat, 0.0)
        self.assertAlmostEqual(tb.total_beat, 4.0)

    def test_swing_update(self):
        tb = TimeBase(60, TimeSignature([1, 1, 1, 1], 4, 0.5))
        tb.update(750)
        self.assertAlmostEqual(tb.bar_quarter_note, 0.75)
        self.assertAlmostEqual(tb.bar_beat, 0.5)

    def test_tempo_multiplier(self):
        tb = TimeBase(60, tempo_multiplier=2)
        tb.update(500)
        self.assertAlmostEqual(tb.total_quarter_note, 1.0)

    def test_trackers_hold_previous_position(self):
        tb = TimeBase(120)
        tb.update_from_quarter_note_delta(1.5)
        tb.update_from_quarter_note_delta(0.5)
        self.assertEqual(tb.total_beat_tracker.old_value, 1.5)
        self.assertEqual(tb.total_beat_tracker.value, 2.0)

    def test_quarter_note_policy(self):
        tb = TimeBase(120, QuarterNoteTimeSignature([2, 2, 3], 8))
        tb.update_from_quarter_note_delta(3.0)
        self.assertEqual(tb.bar, 1)
        self.assertAlmostEqual(tb.bar_beat, 3.0)
        tb.update_from_quarter_note_delta(1.0)
        self.assertEqual(tb.bar, 2)
        self.assertAlmostEqual(tb.bar_beat, 0.5)
        self.assertAlmostEqual(tb.total_beat, 4.0)


class TestPendingTimeSignature(unittest.TestCase):
    def test_change_waits_for_bar_line(self):
        tb = TimeBase(60)
        common = tb.time_sig
        waltz = TimeSignature([1, 1, 1], 4)
        tb.update_from_quarter_note_delta(1)
        tb.time_sig = waltz
        self.assertIs(tb.time_sig, common)
        self.assertIs(tb.pending_time_sig, waltz)

        tb.update_from_quarter_note_delta(2)
        self.assertIs(tb.time_sig, common)

        tb.update_from_quarter_note_delta(1.5)
        self.assertIs(tb.time_sig, waltz)
        self.assertIsNone(tb.pending_time_sig)
        self.assertEqual(tb.bar, 2)
        self.assertAlmostEqual(tb.bar_quarter_note, 0.5)
        self.assertAlmostEqual(tb.total_beat, 4.5)

        # The new bar is three beats long
        tb.update_from_quarter_note_delta(3)
        self.assertEqual(tb.bar, 3)
        self.assertAlmostEqual(tb.total_beat, 7.5)

    def test_rejects_non_time_signature(self):
        tb = TimeBase(60)
        with self.assertRaises(TypeError):
            tb.time_sig = "3/4"


class TestBoundaryCrossing(unittest.TestCase):
    def test_at_bar_beat_crossing(self):
        tb = TimeBase(60)
        tracker = tb.bar_beat_tracker
        tracker.old_value, tracker.value = 2.7, 2.8
        self.assertTrue(tb.at_bar_beat(2.75))
        self.assertTrue(tb.at_bar_beat(2.8))
        self.assertFalse(tb.at_bar_beat(2.7))
        self.assertFalse(tb.at_bar_beat(2.85))

    def test_at_bar_beat_without_movement(self):
        tb = TimeBase(60)
        tracker = tb.bar_beat_tracker
        tracker.old_value, tracker.value = 2.7, 2.7
        self.assertFalse(tb.at_bar_beat(2.75))
        self.assertTrue(tb.at_bar_beat(2.7))

    def test_at_bar_quarter_note_wraps(self):
        tb = TimeBase(60)
        tb.update_from_quarter_note_delta(3.5)
        tb.update_from_quarter_note_delta(1.0)
        self.assertTrue(tb.at_bar_quarter_note(0))
        self.assertTrue(tb.at_bar_quarter_note(3.75))
        self.assertFalse(tb.at_bar_quarter_note(2))


class TestSongPosition(unittest.TestCase):
    def test_jump_recomputes_position(self):
        tb = TimeBase(60)
        seen = []
        tb.on_position_changed.add(lambda d: seen.append(d.total_quarter_note))
        tb.set_song_position(9)
        self.assertEqual(tb.bar, 3)
        self.assertAlmostEqual(tb.bar_quarter_note, 1.0)
        self.assertAlmostEqual(tb.bar_beat, 1.0)
        self.assertAlmostEqual(tb.total_beat, 9.0)
        self.assertEqual(seen, [9.0])

    def test_jump_is_not_a_delta(self):
        tb = TimeBase(60)
        tb.update_from_quarter_note_delta(1)
        tb.set_song_position(6)
        self.assertFalse(tb.total_beat_tracker.is_dirty)
        self.assertFalse(tb.bar_tracker.is_dirty)

    def test_jump_keeps_pending_signature(self):
        tb = TimeBase(60)
        waltz = TimeSignature([1, 1, 1], 4)
        tb.time_sig = waltz
        tb.set_song_position(8)
        self.assertEqual(tb.bar, 3)
        self.assertIs(tb.pending_time_sig, waltz)

    def test_negative_position_rejected(self):
        with self.assertRaises(ValueError):
            TimeBase(60).set_song_position(-1)


class TestTimeBaseStates(unittest.TestCase):
    def test_started_fires_once_on_first_movement(self):
        tb = TimeBase(60)
        started = []
        tb.on_started.add(lambda d: started.append(d.source))
        tb.update(0)
        self.assertFalse(tb.started)
        tb.update(10)
        tb.update(10)
        self.assertTrue(tb.started)
        self.assertEqual(started, [tb])

    def test_disable_and_continue(self):
        tb = TimeBase(60)
        events = []
        tb.on_stopped.add(lambda d: events.append("stopped"))
        tb.on_continued.add(lambda d: events.append("continued"))
        tb.update(1000)
        tb.enabled = False
        self.assertFalse(tb.update(1000))
        self.assertAlmostEqual(tb.total_quarter_note, 1.0)
        tb.enabled = True
        self.assertTrue(tb.update(1000))
        self.assertAlmostEqual(tb.total_quarter_note, 2.0)
        self.assertEqual(events, ["stopped", "continued"])

    def test_enable_before_start_does_not_continue(self):
        tb = TimeBase(60)
        events = []
        tb.on_continued.add(lambda d: events.append("continued"))
        tb.enabled = False
        tb.enabled = True
        self.assertEqual(events, [])

    def test_finish_is_terminal(self):
        tb = TimeBase(60)
        finished = []
        tb.on_finished.add(lambda d: finished.append(d.source))
        tb.update(500)
        tb.finish()
        tb.finish()
        tb.enabled = True
        self.assertTrue(tb.finished)
        self.assertFalse(tb.enabled)
        self.assertFalse(tb.update(500))
        self.assertEqual(finished, [tb])

    def test_invalid_tempo(self):
        with self.assertRaises(ValueError):
            TimeBase(0)
        tb = TimeBase(60)
        with self.assertRaises(ValueError):
            tb.tempo = -5
        with self.assertRaises(ValueError):
            tb.tempo_multiplier = 0
        self.assertEqual(tb.tempo, 60)


class TestPausedTimeBase(unittest.TestCase):
    def test_dependants_hold_still_while_disabled(self):
        tb = TimeBase(60)
        sink = VirtualSink()
        out = MidiOut(sink)
        player = ClipPlayer(Clip(4).add_note(0, 1, 60, 100), tb, out)
        fired = []
        cue = Cue.after_beats(tb, 2, lambda: fired.append(tb.total_beat))

        def tick(ms):
            tb.update(ms)
            player.update(ms)
            cue.update(ms)
            out.update(ms)

        tick(500)
        tb.enabled = False
        for _ in range(6):
            tick(500)
        self.assertAlmostEqual(tb.total_beat, 0.5)
        self.assertAlmostEqual(player.beats_passed, 0.5)
        self.assertFalse(tb.total_beat_tracker.is_dirty)
        self.assertEqual(fired, [])

        tb.enabled = True
        tick(500)
        self.assertAlmostEqual(player.beats_passed, 1.0)
        self.assertEqual(fired, [])
        tick(500)
        tick(500)
        self.assertEqual(len(fired), 1)
        self.assertAlmostEqual(fired[0], 2.0)

    def test_finish_commits_position(self):
        tb = TimeBase(60)
        tb.update(500)
        tb.finish()
        self.assertFalse(tb.total_beat_tracker.is_dirty)
        self.assertFalse(tb.total_quarter_note_tracker.is_dirty)


class TestPositionInvariants(unittest.TestCase):
    def test_bar_position_stays_inside_bar(self):
        tb = TimeBase(90, TimeSignature([1, 1, 1, 1], 4, 0.3))
        deltas = [0.3, 1.7, 0.05, 2.9, 0.61, 3.33, 0.999, 4.0, 0.0, 7.25]
        last_total = 0.0
        last_bar = 1
        for i in range(300):
            if i == 120:
                tb.time_sig = TimeSignature([2, 2, 3], 8, -0.4)
            if i == 210:
                tb.time_sig = QuarterNoteTimeSignature([3, 2], 8, 0.2)
            tb.update_from_quarter_note_delta(deltas[i % len(deltas)])
            ts = tb.time_sig
            self.assertGreaterEqual(tb.bar_quarter_note, 0.0)
            self.assertLess(tb.bar_quarter_note, ts.quarter_notes_per_bar)
            self.assertGreaterEqual(tb.bar_beat, 0.0)
            self.assertLessEqual(tb.bar_beat, ts.beats_per_bar)
            self.assertGreaterEqual(tb.total_quarter_note, last_total)
            self.assertGreaterEqual(tb.bar, last_bar)
            last_total, last_bar = tb.total_quarter_note, tb.bar
        self.assertIsInstance(tb.time_sig, QuarterNoteTimeSignature)
