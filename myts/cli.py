import sys
import argparse
import logging
from typing import List, Optional

from . import __version__
from .aggregator import FeedAggregator
from .channels import channel_id_from_uri, is_valid_channel_uri
from .config import DEFAULT_SERVER_PORT, Settings, load_settings
from .instances import InstanceUnavailableError, select_instance
from .renderer import PageRenderer
from .server import PageServer, PortInUseError
from .subscriptions import StorageError, SubscriptionStore
from .utils import setup_logging

logger = logging.getLogger("myts")

EXAMPLES = """Examples:
  Subscribe to a YouTube channel
  $ myts subscribe https://youtube.com/channel/UCBR8-60-B28hp2BmDPdntcQ

  Start a webserver with a custom port and a custom file
  $ myts -f ./my_subscribed_channels server -p 8080
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="myts",
        description=(
            "Manage YouTube subscriptions via the command line, without a "
            "YouTube account. Subscriptions are stored locally in a file. Run "
            'the subcommand "server" to start a webserver that displays the '
            "latest videos of the channels you subscribed to."
        ),
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-f", "--file", help="File containing subscriptions (default: ~/.myts)"
    )
    parser.add_argument("--config", help="YAML file with settings overrides")
    parser.add_argument("--debug", action="store_true", help="Run in debug mode")
    parser.add_argument(
        "-v", "--version", action="version", version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", metavar="command")

    subscribe = subparsers.add_parser(
        "subscribe", help="Subscribe to a YouTube channel."
    )
    subscribe.add_argument("urls", nargs="*", help="YouTube channel URLs")

    unsubscribe = subparsers.add_parser(
        "unsubscribe", help="Unsubscribe from a YouTube channel."
    )
    unsubscribe.add_argument("urls", nargs="*", help="YouTube channel URLs")

    server = subparsers.add_parser(
        "server",
        help="Start a webserver to display the latest videos of the subscribed YouTube channels.",
    )
    server.add_argument(
        "-p",
        "--port",
        type=int,
        help=f"Run the webserver on this port (default: {DEFAULT_SERVER_PORT})",
    )
    server.add_argument(
        "-i",
        "--invidious",
        action="store_true",
        default=None,
        help="Use the best Invidious server instead of using YouTube",
    )
    server.add_argument(
        "--threaded",
        action="store_true",
        default=None,
        help="Handle connections concurrently",
    )

    return parser


def prompt_urls(action: str) -> List[str]:
    """Ask for a single URL when none was given on the command line."""
    logger.warning(f"No YouTube channel URL provided to {action}.")
    try:
        reply = input("URL: ").strip()
    except EOFError:
        return []
    return [reply] if reply else []


def channel_ids_from_urls(urls: List[str]) -> List[str]:
    channel_ids = []
    for url in urls:
        if is_valid_channel_uri(url):
            channel_ids.append(channel_id_from_uri(url))
        else:
            logger.warning(f"Skipped {url}, because it is an invalid YouTube channel URL.")
    return channel_ids


def cmd_subscribe(store: SubscriptionStore, urls: List[str]) -> int:
    if not urls:
        urls = prompt_urls("subscribe")
    for channel_id in channel_ids_from_urls(urls):
        if store.add(channel_id):
            print("Subscribed.")
    return 0


def cmd_unsubscribe(store: SubscriptionStore, urls: List[str]) -> int:
    if not urls:
        urls = prompt_urls("unsubscribe")
    for channel_id in channel_ids_from_urls(urls):
        if store.remove(channel_id):
            print("Unsubscribed.")
    return 0


def build_page(settings: Settings, store: SubscriptionStore) -> bytes:
    """Run one aggregation pass and render its result."""
    instance = select_instance(settings)
    logger.debug(f"Using instance {instance.url}")

    aggregator = FeedAggregator(settings, instance)
    videos = aggregator.aggregate(store.list_all())
    return PageRenderer(instance).render(videos)


def cmd_server(settings: Settings, store: SubscriptionStore) -> int:
    print(
        "Generating page with latest videos of your subscriptions. Please wait...",
        end="",
        flush=True,
    )
    page = build_page(settings, store)
    print(" Done!")

    server = PageServer(
        page, host=settings.host, port=settings.port, threaded=settings.threaded
    )
    try:
        server.bind()
    except PortInUseError:
        raise
    except OSError as e:
        logger.error(f"Could not start the webserver on port {settings.port}: {e}")
        return 1

    print(f"Access the webserver at http://{server.host}:{server.port}")
    print("(to close the webserver, press Ctrl and C keys simultaneously...)")
    server.serve_forever()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the command line."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.debug)
    logger.debug(f"VERSION={__version__}")
    logger.debug(f"DEBUG={int(args.debug)}")

    if args.command is None:
        parser.print_help()
        return 0

    try:
        settings = load_settings(
            args.config,
            storage_file=args.file,
            debug=args.debug or None,
            port=getattr(args, "port", None),
            use_invidious=getattr(args, "invidious", None),
            threaded=getattr(args, "threaded", None),
        )
    except (TypeError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    store = SubscriptionStore(settings.storage_file)

    try:
        store.init()
        if args.command == "subscribe":
            return cmd_subscribe(store, args.urls)
        if args.command == "unsubscribe":
            return cmd_unsubscribe(store, args.urls)
        return cmd_server(settings, store)
    except StorageError as e:
        logger.error(str(e))
        return 1
    except InstanceUnavailableError as e:
        print()
        logger.error(str(e))
        return 1
    except PortInUseError as e:
        logger.error(e.strerror)
        return 1


if __name__ == "__main__":
    sys.exit(main())
