import argparse
import logging
import sys
from dataclasses import asdict, replace
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from ..errors import EditorError
from ..models.module_state import ModuleKind
from ..models.effect_parameters import parse_hex_color
from ..services.session_controller import SessionController

logger = logging.getLogger(__name__)


def parse_step(controller: SessionController, step_text: str):
    """
    'sketch'                                  → defaults
    'resize:target_width=400,target_height=200'
    'background:threshold=20,key_color=#00ff00'
    """
    name, _, raw = step_text.partition(":")
    kind = ModuleKind(name.strip().lower())
    params = controller.default_parameters(kind)
    known = asdict(params)

    fields = {}
    for item in filter(None, (part.strip() for part in raw.split(","))):
        key, sep, value = item.partition("=")
        key = key.strip().replace("-", "_")
        if not sep or key not in known:
            raise ValueError(f"Bad parameter '{item}' for {kind.value} (known: {', '.join(known)})")
        fields[key] = parse_hex_color(value) if key == "key_color" else int(value)
    return kind, replace(params, **fields)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="photo-editor",
        description="Apply sketch / resize / cartoon / background effects and write a PNG.",
    )
    parser.add_argument("input", type=Path, help="jpg, jpeg, png or bmp file")
    parser.add_argument("-o", "--output", type=Path, default=None,
                        help="output PNG path (default: edited-image-<ms>.png next to the input)")
    parser.add_argument("-a", "--apply", action="append", default=[], metavar="MODULE[:k=v,...]",
                        help="effect to apply; repeat to chain, applied in order")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    # --- Centralized Logging Configuration ---
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )

    controller = SessionController()
    try:
        controller.load_image(args.input.read_bytes(), args.input.name)
        for step_text in args.apply:
            kind, params = parse_step(controller, step_text)
            controller.switch_module(kind)
            controller.apply(kind, params)

        exported = controller.export_current()
    except (EditorError, ValueError, OSError) as err:
        logger.error(f"{type(err).__name__}: {err}")
        return 1

    output = args.output or args.input.parent / exported.filename
    output.write_bytes(exported.data)
    print(f"Saved {output} ({controller.canonical_image.width}x{controller.canonical_image.height})")
    for entry in controller.history:
        print(f"   • {entry}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
