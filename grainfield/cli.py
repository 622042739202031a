"""
CLI - inspect and pre-render propagated paths offline.

    grainfield ir --path 0 0 0  1 5 0 --receiver a=0,0 --receiver b=10,0
    grainfield render-path input.wav --path 0 0 0 --receiver a=3,4 -o out/
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from grainfield.errors import GrainfieldError


def _parse_receiver(value: str) -> tuple[str, tuple[float, float]]:
    try:
        receiver_id, coords = value.split("=", 1)
        x, y = (float(v) for v in coords.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"receiver must look like ID=X,Y, got {value!r}"
        ) from None
    return receiver_id, (x, y)


def _add_propagation_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--path",
        type=float,
        nargs="+",
        required=True,
        help="Path as t x y triples",
    )
    parser.add_argument(
        "-r", "--receiver",
        type=_parse_receiver,
        action="append",
        required=True,
        help="Receiver position as ID=X,Y (repeatable)",
    )
    parser.add_argument("--path-id", type=int, default=0, help="Path id (default: 0)")
    parser.add_argument("--config", help="NodeConfig JSON file")
    parser.add_argument("--speed", type=float, help="Propagation speed (m/s)")
    parser.add_argument("--gain", type=float, help="Per-meter gain factor")
    parser.add_argument("--min-gain", type=float, help="Minimum audible tap gain")


def main(args: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="grainfield",
        description="Distributed granular and spatial audio tools",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # version command
    subparsers.add_parser("version", help="Show version")

    # ir command
    ir_parser = subparsers.add_parser("ir", help="Print the tap list of each receiver")
    _add_propagation_args(ir_parser)
    ir_parser.add_argument("--json", action="store_true", help="Output JSON")

    # render-path command
    render_parser = subparsers.add_parser(
        "render-path",
        help="Render each receiver's copy of a path to a WAV file",
    )
    render_parser.add_argument("input", help="Input audio file")
    _add_propagation_args(render_parser)
    render_parser.add_argument("-o", "--output", default=".", help="Output directory")
    render_parser.add_argument("--master-gain", type=float, default=1.0)
    render_parser.add_argument("--percent", type=float, help="Fraction of input each tap plays")
    render_parser.add_argument("--no-loop", action="store_true", help="Skip taps past the input end")
    render_parser.add_argument("--slope", type=float, help="Read speed change per second of delay")
    render_parser.add_argument("--start-fraction", type=float, help="Read start as fraction of delay")

    parsed = parser.parse_args(args)

    if parsed.command is None:
        parser.print_help()
        return 0

    if parsed.command == "version":
        from grainfield import __version__
        print(f"grainfield {__version__}")
        return 0

    try:
        if parsed.command == "ir":
            return _cmd_ir(parsed)

        if parsed.command == "render-path":
            return _cmd_render_path(parsed)
    except (GrainfieldError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 1


def _load_config(args: argparse.Namespace):
    from grainfield.config import NodeConfig
    from grainfield.monitoring import configure_logging

    config = NodeConfig.from_file(args.config) if args.config else NodeConfig()
    configure_logging(config.level, json_format=config.log_json, node_id=config.node_id)
    changes = {
        field: value
        for field, value in (
            ("speed", args.speed),
            ("gain", args.gain),
            ("min_audible_gain", args.min_gain),
        )
        if value is not None
    }
    if changes:
        from dataclasses import replace
        config.propagation = replace(config.propagation, **changes)
    return config


def _compute(args: argparse.Namespace, config):
    from grainfield.propagation import PropagationModel, parse_path

    receivers = dict(args.receiver)
    model = PropagationModel(config.propagation)
    return model.compute(args.path_id, parse_path(args.path), receivers)


def _cmd_ir(args: argparse.Namespace) -> int:
    """Handle ir command."""
    config = _load_config(args)
    result = _compute(args, config)

    if args.json:
        print(json.dumps({
            "path_id": result.path_id,
            "min_time": result.min_time,
            "receivers": {
                str(rid): [[tap.delay, tap.gain] for tap in tap_list.taps]
                for rid, tap_list in result.tap_lists.items()
            },
        }, indent=2))
        return 0

    print(f"Path {result.path_id}: min_time={result.min_time:.3f}s, {result.total_taps} taps")
    for rid, tap_list in result.tap_lists.items():
        print(f"\n  {rid} ({len(tap_list)} taps, {tap_list.duration:.3f}s)")
        for tap in tap_list.taps:
            print(f"    {tap.delay:8.3f}s  gain {tap.gain:.4f}")
    return 0


def _cmd_render_path(args: argparse.Namespace) -> int:
    """Handle render-path command."""
    from dataclasses import replace

    from grainfield.assets import SoundfileAudioSource, write_audio
    from grainfield.render import TapConvolutionRenderer

    config = _load_config(args)
    result = _compute(args, config)

    input_path = Path(args.input)
    source = SoundfileAudioSource(input_path.parent, {"input": input_path.name})
    audio = source.get("input")

    changes = {
        field: value
        for field, value in (
            ("playback_percent", args.percent),
            ("read_speed_slope", args.slope),
            ("start_fraction", args.start_fraction),
        )
        if value is not None
    }
    if args.no_loop:
        changes["loop"] = False
    renderer = TapConvolutionRenderer(replace(config.render, **changes))

    output_dir = Path(args.output)
    for rid, tap_list in result.tap_lists.items():
        rendered = renderer.render(audio, tap_list, master_gain=args.master_gain)
        path = write_audio(output_dir / f"{rid}.wav", rendered.scaled(), rendered.sample_rate)
        print(f"{rid}: {len(tap_list)} taps, {rendered.duration:.2f}s -> {path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
