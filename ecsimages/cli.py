import argparse
import asyncio
import logging
import sys

from .aws_sessions import AWSSessions
from .config_loader import ConfigLoader
from .ecs_image_resolver import ECSImageResolver
from .exceptions import ECSImagesError
from .report import render

LOG_LEVELS = [logging.WARNING, logging.INFO, logging.DEBUG]


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="ecs-images",
        description="List the container image every ECS service is running.",
    )
    parser.add_argument("-c", "--config", help="JSON configuration file")
    parser.add_argument("-p", "--profile", help="AWS profile to use")
    parser.add_argument("-r", "--region", help="AWS region to use")
    parser.add_argument(
        "-i",
        "--include",
        dest="cluster_includes",
        action="append",
        help="Only report clusters whose ARN contains this string (repeatable)",
    )
    parser.add_argument("-o", "--output", choices=["text", "json"])
    parser.add_argument("-v", "--verbose", action="count", default=0)
    return parser.parse_args(argv)


def setup_logging(verbosity):
    level = LOG_LEVELS[min(verbosity, len(LOG_LEVELS) - 1)]
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


async def discover(aws_sessions, config):
    async with aws_sessions.ecs_client(
        profile_name=config.get("profile"),
        region_name=config.get("region"),
        credentials=config.get("credentials"),
    ) as ecs_client:
        resolver = ECSImageResolver(ecs_client)
        return await resolver.images_of_clusters(config["cluster_includes"])


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        loader = ConfigLoader(args.config)
        config = loader.merge_overrides(
            loader.load_config(),
            profile=args.profile,
            region=args.region,
            cluster_includes=args.cluster_includes,
            output=args.output,
        )
        aws_sessions = AWSSessions(max_pool_connections=config["max_pool_connections"])
        aws_sessions.create_session(
            profile_name=config.get("profile"),
            region_name=config.get("region"),
            credentials=config.get("credentials"),
        )
        images_by_cluster = asyncio.run(discover(aws_sessions, config))
    except ECSImagesError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(render(images_by_cluster, config["output"]))
    return 0
