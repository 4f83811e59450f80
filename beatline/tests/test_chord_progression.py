import unittest

from beatline.arpeggiator import Arpeggiator
from beatline.arpeggio import Arpeggio
from beatline.chord import Chord
from beatline.chord_progression import ChordProgression
from beatline.chord_progression_player import ChordProgressionPlayer
from beatline.midi_out import MidiOut, VirtualSink
from beatline.time_base import TimeBase


C = Chord([60, 64, 67], root=60)
G = Chord([55, 59, 62], root=55)


class TestChordProgression(unittest.TestCase):
    def test_add_chord_trims_and_drops_overlaps(self):
        a, b, c, d = Chord([60]), Chord([62]), Chord([64]), Chord([65])
        prog = ChordProgression(8)
        prog.add_chord(0, 4, a).add_chord(2, 4, b)
        self.assertEqual(prog.chords[0].end, 2)
        prog.add_chord(4, 4, c)
        self.assertEqual(prog.chords[1].end, 4)
        prog.add_chord(0, 2, d)
        self.assertEqual([x.chord for x in prog.chords], [b, c, d])

    def test_add_chord_pushes_back_later_chord(self):
        prog = ChordProgression(8)
        prog.add_chord(2, 4, C).add_chord(0, 3, G)
        first = prog.chords[0]
        self.assertEqual((first.start, first.end), (3, 6))

    def test_range_queries(self):
        prog = ChordProgression(8)
        prog.add_chord(0, 2, C).add_chord(2, 2, G).add_chord(4, 4, C)
        starts = lambda xs: [x.start for x in xs]
        self.assertEqual(starts(prog.get_chords_in_range(1, 3)), [0, 2])
        self.assertEqual(starts(prog.get_chords_in_range(2, 4)), [2])
        self.assertEqual(starts(prog.get_chords_in_range(7, 1)), [0, 4])
        self.assertIs(prog.get_chord_at(9).chord, C)
        self.assertIs(prog.get_chord_at(-5).chord, G)

    def test_remove_chords(self):
        prog = ChordProgression(4).add_chord(0, 2, C).add_chord(2, 2, G)
        prog.remove_chords(lambda x: x.chord is G)
        self.assertIsNone(prog.get_chord_at(3))


class TestChordProgressionPlayer(unittest.TestCase):
    def setUp(self):
        self.tb = TimeBase(60)
        prog = ChordProgression(4).add_chord(0, 2, C).add_chord(2, 2, G)
        self.player = ChordProgressionPlayer(prog, self.tb)
        self.changes = []
        self.player.on_chord_changed.add(lambda d: self.changes.append(d.chord))

    def step(self, qn, n=1):
        for _ in range(n):
            self.tb.update_from_quarter_note_delta(qn)
            self.player.update(0)

    def test_fires_on_change_only(self):
        self.step(0.5, 3)
        self.assertEqual(self.changes, [C])
        self.step(0.5, 3)
        self.assertEqual(self.changes, [C, G])
        self.assertIs(self.player.current_chord.chord, G)
        self.step(0.5, 2)
        self.assertEqual(self.changes, [C, G, C])

    def test_drives_arpeggiator(self):
        sink = VirtualSink()
        out = MidiOut(sink)
        arp = Arpeggiator(Arpeggio(1).add_note(0, 0.5, 0, 100), self.tb, out)
        arp.follow(self.player)
        for _ in range(5):
            self.tb.update_from_quarter_note_delta(0.5)
            self.player.update(0)
            arp.update(0)
            out.update(0)
        pitches = [e[2] for e in sink.of_type("on")]
        self.assertEqual(pitches, [60, 60, 55])
