"""Build, and optionally push, prebuilt worker images for selected languages."""

from __future__ import annotations

import argparse
import json
import logging
import subprocess
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from datetime import datetime

logger = logging.getLogger(__name__)

_IMAGE_LANGUAGES = {
    "c++": "cxx",
    "node_purejs": "node",
    "php7_protobuf_c": "php7",
    "python_asyncio": "python",
}

_BUILD_TIMEOUT_SECONDS = 30 * 60
_MAX_TAG_LENGTH = 128

_FORMAT_ERROR = (
    "Input error in language and gitref selection. Please follow the format "
    "language:gitref or language:repository:gitref, for example c++:master "
    "or c++:grpc/grpc:master"
)


@dataclass
class LanguageSpec:
    """The image language, repository and git reference of one tested language."""

    name: str
    repo: str = ""
    gitref: str = ""


def parse_language_specs(values: list[str]) -> dict[str, LanguageSpec]:
    """Parse language:gitref or language:repository:gitref values.

    Languages are mapped to image language names; a later value for the same
    image language replaces an earlier one.
    """
    specs: dict[str, LanguageSpec] = {}
    for value in values:
        parts = value.split(":", 2)
        if len(parts) < 2 or parts[-1] == "":
            raise ValueError(_FORMAT_ERROR)
        name = _IMAGE_LANGUAGES.get(parts[0], parts[0])
        if len(parts) == 3:
            spec = LanguageSpec(name=name, repo=parts[1], gitref=parts[2])
        else:
            spec = LanguageSpec(name=name, gitref=parts[1])
        specs[spec.name] = spec
    return specs


def build_command(
    spec: LanguageSpec, image: str, dockerfile_root: str, cache_breaker: str
) -> list[str]:
    """Return the command that builds the image of one language."""
    command = [
        "timeout",
        f"{_BUILD_TIMEOUT_SECONDS}s",
        "docker",
        "build",
        f"{dockerfile_root}/{spec.name}/",
        "-t",
        image,
        "--build-arg",
        f"GITREF={spec.gitref}",
        "--build-arg",
        f"BREAK_CACHE={cache_breaker}",
    ]
    if spec.repo:
        command += ["--build-arg", f"REPOSITORY={spec.repo}"]
    return command


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
        description="Build and push prebuilt worker images."
    )
    parser.add_argument(
        "-p", dest="prefix", default="", help="image registry to push images"
    )
    parser.add_argument(
        "-build-only",
        "--build-only",
        dest="build_only",
        action="store_true",
        help="do not push the images to a container registry",
    )
    parser.add_argument(
        "-t", dest="tag", default="", help="tag for the prebuilt images"
    )
    parser.add_argument(
        "-r",
        dest="dockerfile_root",
        default="",
        help="root directory of Dockerfiles to build prebuilt images",
    )
    parser.add_argument(
        "-l",
        dest="languages",
        action="append",
        default=[],
        help="language[:repository]:gitref, e.g. cxx:master or cxx:grpc/grpc:master",
    )
    return parser


def _check(args: argparse.Namespace) -> None:
    if not args.prefix:
        raise ValueError(
            "No registry provided, please provide a container registry.If the "
            "images are not intended to be pushed to a registry, please provide "
            "a prefix for naming the built images"
        )
    if not args.tag:
        raise ValueError("Failed preparing prebuilt images: no image tag provided")
    if len(args.tag) > _MAX_TAG_LENGTH:
        raise ValueError(
            "Failed preparing prebuilt images: invalid tag name, a tag name may "
            "not start with a period or a dash and may contain a maximum of 128 "
            "characters."
        )
    if not args.dockerfile_root:
        raise ValueError(
            "Fail preparing prebuilt images: no root directory for Dockerfiles provided"
        )
    if not args.languages:
        raise ValueError(
            "Failed preparing prebuilt images: no language and its gitref pair "
            "specified, please provide languages and the GITREF as cxx:master"
        )


def _process(
    lang: str, spec: LanguageSpec, args: argparse.Namespace, cache_breaker: str
) -> bool:
    image = f"{args.prefix}/{lang}:{args.tag}"
    logger.info("building %s image", lang)
    command = build_command(spec, image, args.dockerfile_root, cache_breaker)
    logger.info("Running command: %s", " ".join(command))
    ok, output = _run(command)
    if not ok:
        logger.info(
            "Failed building %s image. Dump of command's output will follow:", lang
        )
        logger.info("%s", output)
        logger.error("Failed building %s image", lang)
        return False
    logger.info(
        "Succeeded building %s image. Dump of command's output will follow:", lang
    )
    logger.info("%s", output)
    logger.info("Succeeded building %s image: %s", lang, image)

    if args.build_only:
        return True
    logger.info("pushing %s image", lang)
    ok, output = _run(["docker", "push", image])
    if not ok:
        logger.info(
            "Failed pushing %s image. Dump of command's output will follow:", lang
        )
        logger.info("%s", output)
        logger.error("Failed pushing %s image", lang)
        return False
    logger.info(
        "Succeeded pushing %s image. Dump of command's output will follow:", lang
    )
    logger.info("%s", output)
    logger.info("Succeeded pushing %s image to %s", lang, image)
    return True


def main(argv: list[str] | None = None) -> int:
    """Build (and push) images for every selected language; return an exit code."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    args = _parser().parse_args(argv)
    try:
        _check(args)
        specs = parse_language_specs(args.languages)
    except ValueError as exc:
        logger.error("%s", exc)
        return 1

    logger.info("Selected language : REPOSITORY: GITREF")
    logger.info(
        "%s",
        json.dumps({name: asdict(specs[name]) for name in sorted(specs)}, indent=2),
    )

    cache_breaker = str(datetime.now())
    with ThreadPoolExecutor(max_workers=len(specs)) as pool:
        futures = [
            pool.submit(_process, lang, spec, args, cache_breaker)
            for lang, spec in specs.items()
        ]
        results = [future.result() for future in futures]

    if not all(results):
        return 1
    logger.info("All images are processed")
    return 0


if __name__ == "__main__":
    sys.exit(main())