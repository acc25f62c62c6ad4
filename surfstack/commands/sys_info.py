import argparse

from .. import sys_info


def run():
    """Entry point of ``surfstack-sys_info``.

    Prints platform, colormap preset and dependency information, to stdout
    or to the file given with ``--output``.
    """
    parser = argparse.ArgumentParser(
        prog=f"{__package__.split('.')[0]}-sys_info",
        description="Report system, colormap preset and dependency information.",
    )
    parser.add_argument(
        "--developer",
        help="display information for optional dependencies",
        action="store_true",
    )
    parser.add_argument(
        "-o",
        "--output",
        help="write the report to this file instead of stdout",
        default=None,
    )
    args = parser.parse_args()

    if args.output is None:
        sys_info(developer=args.developer)
        return
    with open(args.output, "w", encoding="utf-8") as fid:
        sys_info(fid=fid, developer=args.developer)
