import argparse
import logging
import os
import sys

from cellmorph.core import pipeline, utils
from cellmorph.core.animation import default_export_duration_ms
from cellmorph.core.errors import CellMorphError
from cellmorph.visualization import export


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="cellmorph: rearrange the cells of one image into another.")
    parser.add_argument("--source", required=True, help="Path to source image")
    parser.add_argument("--target", required=True, help="Path to target image")
    parser.add_argument("--cell-size", type=int, default=32, help="Cell side length in pixels")
    parser.add_argument("--gradient-weight", type=float, default=0.5, help="Edge vs color weight in [0, 1]")
    parser.add_argument("--duration", type=int, default=2000, help="Nominal animation duration (ms)")
    parser.add_argument("--fps", type=int, default=30, help="Nominal animation frame rate")
    parser.add_argument("--mode", choices=["greedy", "optimal"], default="greedy", help="Matching solver")
    parser.add_argument("--format", choices=["gif", "mp4"], default="gif", help="Export format")
    parser.add_argument("--export-duration", type=int, default=None, help="Exported animation length (ms)")
    parser.add_argument("--workers", type=int, default=None, help="Threads for signature extraction")
    parser.add_argument("--out", default="out_cellmorph", help="Output directory")
    parser.add_argument("--verbose", action="store_true", help="Log pipeline details")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = pipeline.Settings(
            cell_size=args.cell_size,
            gradient_weight=args.gradient_weight,
            target_duration_ms=args.duration,
            nominal_fps=args.fps,
            mode=args.mode,
            workers=args.workers,
        )
    except ValueError as e:
        print(f"Invalid settings: {e}", file=sys.stderr)
        return 2

    try:
        print("Loading images...")
        src_img = utils.load_image(args.source)
        tgt_img = utils.load_image(args.target)

        print(f"Running {args.mode} matching...")
        result = pipeline.run(src_img, tgt_img, settings)
        print(
            f"{int(result.stats['cells'])} cells, {len(result.frames)} frames "
            f"in {result.stats['duration_s']:.2f}s"
        )

        os.makedirs(args.out, exist_ok=True)
        last = export.render_sequence(result.frames, [result.frames.last_index])[0]
        utils.save_image(last, os.path.join(args.out, "final.png"))

        duration = args.export_duration or default_export_duration_ms(len(result.frames))
        if args.format == "mp4":
            exported = export.export_video(result.frames, duration, fps=args.fps, show_progress=True)
        else:
            exported = export.export_gif(result.frames, duration, show_progress=True)
        path = exported.save(args.out)
    except CellMorphError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f" Done! Saved {exported.frame_count} frames to {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
