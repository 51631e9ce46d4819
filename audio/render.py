"""Offline WAV rendering — load audio, compress or expand, save output.

Usage:
    uv run python main.py compress input.wav output.wav [--preset presets/amps.json]
    uv run python main.py expand input.wav output.wav [--attack 3 --recovery 13.5]
    uv run python main.py measure [--sr 8000]

Without --preset, uses default params.  The sample rate always comes from
the input file unless --sr asks for resampling.
"""

import argparse
import json
import logging

from engine.compandor import render_compandor
from engine.gain_table import build_gain_table
from engine.params import FORMAT_NAMES, SCHEMA, SR, validate_params
from shared.analysis import measure_attack_recovery
from shared.audio import load_wav, save_wav

log = logging.getLogger(__name__)


def load_preset(path):
    with open(path) as f:
        return json.load(f)


def build_parser():
    parser = argparse.ArgumentParser(description="2:1 compandor offline renderer")
    sub = parser.add_subparsers(dest="command", required=True)

    for name in ("compress", "expand"):
        p = sub.add_parser(name, help=f"{name} a WAV file")
        p.add_argument("input", help="Input WAV file")
        p.add_argument("output", help="Output WAV file")
        p.add_argument("--preset", help="Preset JSON file")
        p.add_argument("--attack", type=float, help=SCHEMA.help_text("attack_ms"))
        p.add_argument("--recovery", type=float, help=SCHEMA.help_text("recovery_ms"))
        p.add_argument("--sr", type=int, help="Resample input to this rate first")
        p.add_argument("--chunk", type=int, help=SCHEMA.help_text("chunk_size"))
        p.add_argument("--format", choices=SCHEMA.get("format").choices,
                       help=SCHEMA.help_text("format"))

    p = sub.add_parser("measure", help="Measure attack/recovery settling times")
    p.add_argument("--sr", type=int, default=SR, help=SCHEMA.help_text("sample_rate"))
    p.add_argument("--attack", type=float, help=SCHEMA.help_text("attack_ms"))
    p.add_argument("--recovery", type=float, help=SCHEMA.help_text("recovery_ms"))
    return parser


def params_from_args(args, sr):
    raw = {}
    if getattr(args, "preset", None):
        raw.update(load_preset(args.preset))
    raw["sample_rate"] = sr
    if args.attack is not None:
        raw["attack_ms"] = args.attack
    if args.recovery is not None:
        raw["recovery_ms"] = args.recovery
    if args.command in ("compress", "expand"):
        raw["direction"] = args.command
        if args.chunk is not None:
            raw["chunk_size"] = args.chunk
        if args.format is not None:
            raw["format"] = args.format
    return validate_params(raw)


def main(argv=None):
    args = build_parser().parse_args(argv)
    build_gain_table()

    if args.command == "measure":
        params = params_from_args(args, args.sr)
        result = measure_attack_recovery(params["sample_rate"], params["attack_ms"],
                                         params["recovery_ms"])
        print(f"Sample rate {params['sample_rate']} Hz, "
              f"nominal attack {params['attack_ms']} ms / recovery {params['recovery_ms']} ms")
        print(f"  measured attack:   {result['attack_ms']:.2f} ms")
        print(f"  measured recovery: {result['recovery_ms']:.2f} ms")
        return result

    audio, sr = load_wav(args.input, args.sr)
    params = params_from_args(args, sr)
    log.debug("params %s", params)
    n = audio.shape[0]
    ch = audio.shape[1] if audio.ndim == 2 else 1
    print(f"Loaded {args.input}: {n} samples, {sr} Hz, {ch} ch")

    output = render_compandor(audio, params)
    save_wav(args.output, output, sr, FORMAT_NAMES[params["format"]])
    print(f"Saved {args.output}")
    return output


def cli():
    """Console-script entry point."""
    logging.basicConfig(level=logging.INFO, format="%(name)s %(levelname)s: %(message)s")
    main()
