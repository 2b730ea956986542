"""Delete or untag images carrying a given tag in a container registry."""

from __future__ import annotations

import argparse
import logging
import subprocess
import sys

logger = logging.getLogger(__name__)


def parse_repositories(output: str) -> list[str]:
    """Return the repositories listed after the header line of gcloud output."""
    lines = output.split("\n")
    return [line for line in lines[1:] if line != ""]


def tag_count(output: str) -> int:
    """Return the number of tags on the image listed by gcloud list-tags.

    Returns 0 when the output lists no image.
    """
    lines = output.split("\n")
    if len(lines) <= 2:
        return 0
    fields = lines[1].split()
    if len(fields) < 2:
        raise ValueError(f"unexpected image line: {lines[1]!r}")
    return len(fields[1].split(","))


def _run(command: list[str]) -> tuple[bool, str]:
    try:
        result = subprocess.run(
            command, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True
        )
    except OSError as exc:
        return False, str(exc)
    return result.returncode == 0, result.stdout or ""


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Delete or untag images with a given tag."
    )
    parser.add_argument(
        "-p", dest="prefix", default="", help="set the root repository for search"
    )
    parser.add_argument(
        "-t", dest="tag", default="", help="images with this tag will be deleted"
    )
    return parser


def _process_repository(repository: str, tag: str) -> None:
    logger.info("Processing image repository: %s", repository)
    image = f"{repository}:{tag}"

    ok, output = _run(
        ["gcloud", "container", "images", "list-tags", repository, f"--filter={tag}"]
    )
    if not ok:
        logger.info("Failed getting image: %s with tag %s: %s", repository, tag, output)

    count = tag_count(output)
    if count == 0:
        logger.info("Tag: %s is not presented.", tag)
        return

    if count > 1:
        logger.info(
            "Image have multiple tags, including %s, untag the image with tag %s "
            "instead of deleting image",
            tag,
            tag,
        )
        ok, output = _run(["gcloud", "-q", "container", "images", "untag", image])
        if not ok:
            logger.info("Failed untagging %s: %s", image, output)
        logger.info("Succeeded untagging %s:%s", repository, tag)
    else:
        ok, output = _run(["gcloud", "-q", "container", "images", "delete", image])
        if not ok:
            logger.info("Failed deleting image %s : %s", image, output)
        logger.info("Succeeded deleting delete %s", image)


def main(argv: list[str] | None = None) -> int:
    """Untag or delete every image with the tag under the prefix; return an exit code."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    args = _parser().parse_args(argv)
    if not args.prefix:
        logger.error("no root repository is provided")
        return 1
    if not args.tag:
        logger.error("no image tag is provided")
        return 1

    logger.info(
        "start to process all images within %s having tag: %s", args.prefix, args.tag
    )
    ok, output = _run(
        ["gcloud", "container", "images", "list", f"--repository={args.prefix}"]
    )
    if not ok:
        logger.info("Failed getting repositories within %s: %s", args.prefix, output)
    logger.info("All image repositories within specified registry: %s", args.prefix)
    logger.info("%s", output)

    for repository in parse_repositories(output):
        _process_repository(repository, args.tag)

    logger.info(
        "All images with tag: %s within container registry: %s are processed.",
        args.tag,
        args.prefix,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())