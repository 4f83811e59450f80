from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional

from beatline.arpeggiator import Arpeggiator
from beatline.arpeggio import Arpeggio
from beatline.chord import Chord
from beatline.chord_progression import ChordProgression
from beatline.chord_progression_player import ChordProgressionPlayer
from beatline.clip import Clip
from beatline.clip_player import ClipPlayer
from beatline.clock import Clock
from beatline.cue import Cue
from beatline.midi_out import CoreSink, MidiOut, MidoSink, VirtualSink, open_mido_output
from beatline.repeat import Repeat
from beatline.tick_sender import TickSender
from beatline.time_base import TimeBase
from beatline.time_sig import parse_time_signature
from beatline.tweens import Tween


@dataclass
class PlaybackConfig:
    port: Optional[str] = None
    bpm: float = 120.0
    time_sig: str = "4/4"
    swing: float = 0.0
    bars: int = 0
    tick_ms: float = 5.0
    dry_run: bool = False
    metrics: bool = False
    send_clock: bool = False
    log_level: str = "WARNING"

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "PlaybackConfig":
        return cls(
            port=args.port,
            bpm=args.bpm,
            time_sig=args.time_sig,
            swing=args.swing,
            bars=max(0, int(args.bars)),
            tick_ms=args.tick_ms,
            dry_run=bool(args.dry_run),
            metrics=bool(args.metrics),
            send_clock=bool(args.send_clock),
            log_level=args.log_level,
        )


# I - vi - IV - V in C, one chord per bar
PROGRESSION = [
    Chord([60, 64, 67], root=60),
    Chord([57, 60, 64], root=57),
    Chord([53, 57, 60], root=53),
    Chord([55, 59, 62], root=55),
]


def build_demo(cfg: PlaybackConfig, sink: CoreSink) -> Dict[str, object]:
    """Wire a time base, three players and a MidiOut onto a fresh Clock.

    Registration order is the update order: time base, then players,
    then the MidiOut that flushes what they started.
    """
    ts = parse_time_signature(cfg.time_sig, swing=cfg.swing)
    bpb = ts.beats_per_bar
    time_base = TimeBase(cfg.bpm, ts).with_ref("time")
    midi_out = MidiOut(sink).with_ref("out")

    progression = ChordProgression(bpb * len(PROGRESSION))
    for i, chord in enumerate(PROGRESSION):
        progression.add_chord(i * bpb, bpb, chord)
    chords = ChordProgressionPlayer(progression, time_base).with_ref("chords")

    arpeggio = Arpeggio(bpb)
    steps = int(bpb * 2)
    for i in range(steps):
        arpeggio.add_note(i * 0.5, 0.45, i % 4, Tween.sine_out(100, 60))
    arp = Arpeggiator(arpeggio, time_base, midi_out).with_ref("arp")
    arp.channel = 0
    arp.follow(chords)

    fade = Tween.linear(110, 70)
    bass_clip = Clip(bpb)
    bass_clip.add_note(0, bpb / 2, 36, lambda beat: fade(beat / (bpb / 2)))
    bass_clip.add_note(bpb / 2, bpb / 2, 43, 90)
    bass_clip.add_cc(0, bpb, 74, lambda beat: 40 + 60 * beat / bpb)
    bass_clip.add_bend(0, 0, 0.0)
    bass_clip.add_bend(bpb - 1, 1, lambda beat: 0.25 * beat)
    bass = ClipPlayer(bass_clip, time_base, midi_out).with_ref("bass")
    bass.channel = 1

    clock = Clock(cfg.tick_ms)
    clock.add_children(time_base, chords, arp, bass, midi_out)
    return {
        "clock": clock,
        "time_base": time_base,
        "midi_out": midi_out,
        "chords": chords,
        "arp": arp,
        "bass": bass,
    }


def _print_metrics(demo: Dict[str, object]) -> None:
    m = demo["midi_out"].get_metrics()
    j = demo["clock"].get_metrics()
    print(
        f"[metrics] note_on={m.get('msgs_note_on', 0)} note_off={m.get('msgs_note_off', 0)} "
        f"pressure={m.get('msgs_note_pressure', 0)} cc={m.get('msgs_cc', 0)} bend={m.get('msgs_bend', 0)} "
        f"suppressed_off={m.get('suppressed_note_off', 0)} jitter_p95={j.get('jitterMsP95', 0.0)}",
        flush=True,
    )


def _announce_bars(demo: Dict[str, object]) -> None:
    time_base: TimeBase = demo["time_base"]

    def on_tick(_args) -> None:
        if time_base.bar_tracker.is_dirty:
            print(f"[play] bar {time_base.bar}", flush=True)

    # Inserted right after the time base so it sees this tick's bar change
    repeat = Repeat.until(lambda: time_base.finished, on_tick)
    demo["clock"].children.insert(1, repeat)


def run_dry(cfg: PlaybackConfig) -> VirtualSink:
    """Render `bars` bars offline into a VirtualSink, one tick at a time."""
    sink = VirtualSink()
    demo = build_demo(cfg, sink)
    clock: Clock = demo["clock"]
    time_base: TimeBase = demo["time_base"]
    bars = cfg.bars or 1
    while time_base.bar <= bars:
        clock.update_children(cfg.tick_ms)
    demo["midi_out"].finish()
    for e in sink.events:
        print(f"[play] {e}", flush=True)
    if cfg.metrics:
        _print_metrics(demo)
    return sink


def run_live(cfg: PlaybackConfig) -> None:
    out = open_mido_output(cfg.port)
    sink = MidoSink(out)
    demo = build_demo(cfg, sink)
    clock: Clock = demo["clock"]
    time_base: TimeBase = demo["time_base"]
    midi_out: MidiOut = demo["midi_out"]
    done = threading.Event()

    _announce_bars(demo)
    if cfg.send_clock:
        # Right after the time base, ahead of the players
        clock.children.insert(1, TickSender(time_base, sink).with_ref("ticks"))
    if cfg.bars > 0:
        clock.children.insert(1, Cue.when(lambda: time_base.bar > cfg.bars, done.set))

    def shutdown(*_):
        clock.stop()
        # Fires on_stopped, which a TickSender turns into MIDI Stop
        time_base.enabled = False
        midi_out.finish()
        sink.panic()
        print("[play] stopped", flush=True)

    def on_signal(*_):
        shutdown()
        sys.exit(0)

    signal.signal(signal.SIGINT, on_signal)
    signal.signal(signal.SIGTERM, on_signal)

    def metrics_printer():
        while not done.is_set():
            _print_metrics(demo)
            time.sleep(1.0)

    print(f"[play] port={getattr(out, 'name', '?')} bpm={cfg.bpm} time_sig={time_base.time_sig!r}", flush=True)
    clock.start()
    if cfg.metrics:
        threading.Thread(target=metrics_printer, daemon=True).start()
    # Wait until the requested bars complete or until interrupted
    done.wait()
    shutdown()


def main(argv=None):
    ap = argparse.ArgumentParser(description="Play a beatline demo (chords, arpeggio, bass) to a MIDI port")
    ap.add_argument("--port", help="Substring to match MIDI port (e.g., 'IAC')")
    ap.add_argument("--bpm", type=float, default=120.0, help="Tempo in quarter notes per minute")
    ap.add_argument("--time-sig", default="4/4", help="Time signature, e.g. 4/4, 7/8 or 2+2+3/8")
    ap.add_argument("--swing", type=float, default=0.0, help="Swing amount in [-1, 1]; 0 is straight")
    ap.add_argument("--bars", type=int, default=0, help="Number of bars to play. 0 = until interrupted")
    ap.add_argument("--tick-ms", type=float, default=5.0, help="Driver tick interval in milliseconds")
    ap.add_argument("--dry-run", action="store_true", help="Render offline to a virtual sink and print the messages")
    ap.add_argument("--metrics", action="store_true", help="Print output counters (once per second when live)")
    ap.add_argument("--send-clock", action="store_true", help="Send MIDI clock and Start/Stop/Continue to the port")
    ap.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, ...)")
    args = ap.parse_args(argv)

    cfg = PlaybackConfig.from_args(args)
    logging.basicConfig(level=getattr(logging, cfg.log_level.upper(), logging.WARNING))
    if cfg.dry_run:
        run_dry(cfg)
    else:
        run_live(cfg)


if __name__ == "__main__":
    main()
