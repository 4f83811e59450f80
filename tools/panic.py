from __future__ import annotations

import argparse

from beatline.midi_out import MidoSink, open_mido_output


def main():
    ap = argparse.ArgumentParser(description="Send Sustain Off / All Sound Off / All Notes Off on every channel")
    ap.add_argument("--port", required=True, help="Substring to match MIDI port (e.g., 'IAC')")
    args = ap.parse_args()
    out = open_mido_output(args.port)
    MidoSink(out).panic()
    print(f"[panic] sent CC64/120/123 on 16 channels to {getattr(out, 'name', args.port)}")


if __name__ == "__main__":
    main()
