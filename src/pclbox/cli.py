# cli entrypoint
from __future__ import annotations

import logging
import sys
from typing import List, Optional

from .config import build_arg_parser, load_config_and_args
from .dumper import CommandDumper
from .errors import GrammarError, PositioningError, ResourceError
from .logging_utils import setup_logging
from .parser import iter_commands

log = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the command-line PCL dumper."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    config = load_config_and_args(args)
    setup_logging(config.log_level)

    resource = sys.stdin.buffer if config.input_path == "-" else config.input_path
    dumper = CommandDumper(
        sys.stdout, show_offsets=config.show_offsets, show_labels=config.show_labels
    )
    commands = iter_commands(
        resource,
        max_mapped_size=config.max_mapped_size,
        max_buffered_size=config.max_buffered_size,
    )
    try:
        dumper.dump(commands)
    except GrammarError as exc:
        sys.stdout.flush()
        print(f"ERROR: {exc}", file=sys.stderr)
        log.debug("Decoding stopped after %d commands", dumper.total)
        return 1
    except (ResourceError, PositioningError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    finally:
        commands.close()

    log.info("Decoded %d commands: %s", dumper.total, dict(dumper.counts))
    return 0


if __name__ == "__main__":
    sys.exit(main())
