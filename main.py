"""
Kemono Client Application

This is the main entry point for the Kemono client. It wires the API gateway,
the local state and the session, favorites and feed services together and
exposes them as a command line tool.
"""

import sys
import json
import argparse
import getpass
import logging
from typing import Any, Callable, Dict, List, Optional

from config import settings
from config.validators import validate_settings, get_config_summary
from utils.logger import get_logger, setup_file_logging
from utils.exceptions import AuthError
from utils.helpers import strip_html_tags, truncate_text
from data.models import Post, Result, is_post_payload
from data.protocols import KeyValueStorage
from data.state import ClientState
from data.storage import LocalStorage
from services.api_gateway import KemonoApiGateway
from services.session_service import SessionManager
from services.favorites_service import FavoritesStore
from services.feed_service import FeedAggregator, FeedPager

# Set up logging
logger = get_logger(__name__)

CONTENT_PREVIEW_LENGTH = 280


class KemonoClient:
    """
    Main application class for the Kemono client.

    Owns the client state and the services that operate on it. Every
    component receives its dependencies here.
    """

    def __init__(
        self,
        storage: Optional[KeyValueStorage] = None,
        api: Optional[KemonoApiGateway] = None,
        validate: bool = True
    ):
        """Initialize the Kemono client."""
        if validate:
            validate_settings()
        logger.debug(f"Configuration: {get_config_summary()}")

        self.storage = storage or LocalStorage()
        self.state = ClientState.load(self.storage)
        self.api = api or KemonoApiGateway()

        # Initialize services
        self.sessions = SessionManager(self.api, self.state)
        self.favorites = FavoritesStore(self.api, self.state)
        self.feed = FeedAggregator(self.api)


# =============================================================================
# Rendering
# =============================================================================

def post_url(post: Post) -> Optional[str]:
    service, creator_id = post.service, post.user
    if not service or not creator_id:
        return None
    return f"{settings.KEMONO_BASE_URL}/{service}/user/{creator_id}/post/{post.id}"


def format_post(post: Post, full: bool = False) -> str:
    """
    Render a post as plain text.

    Args:
        post: The post to render
        full: If True, include the whole content and every attachment

    Returns:
        str: The rendered post
    """
    lines = [post.title or "(untitled)"]

    byline = " | ".join(part for part in (post.published, post.service, post.user) if part)
    if byline:
        lines.append(f"  {byline}")

    url = post_url(post)
    if url:
        lines.append(f"  {url}")

    content = strip_html_tags(post.content).strip()
    if content:
        if not full:
            content = truncate_text(" ".join(content.split()), CONTENT_PREVIEW_LENGTH)
        lines.append(f"  {content}")

    files = ([post.file] if post.file else []) + (post.attachments if full else [])
    for post_file in files:
        lines.append(f"  [{post_file.kind}] {post_file.name or post_file.path}: {post_file.url}")

    if not full and post.attachments:
        lines.append(f"  ({len(post.attachments)} attachments)")

    return "\n".join(lines)


def print_posts(posts: List[Post]) -> None:
    for post in posts:
        print(format_post(post))
        print()


def print_data(data: Any) -> None:
    """Print an API payload, as posts where it is a list of posts."""
    if isinstance(data, list) and data and all(is_post_payload(item) for item in data):
        print_posts([Post.from_api(item) for item in data])
    else:
        print(json.dumps(data, indent=2, ensure_ascii=False))


def report(result: Result) -> Result:
    """Print a result's message, warnings and error."""
    for warning in result.warnings:
        print(f"Warning: {warning}", file=sys.stderr)
    if result.success:
        if result.message:
            print(result.message)
    else:
        print(f"Error: {result.error_message}", file=sys.stderr)
    return result


# =============================================================================
# Commands
# =============================================================================

def cmd_login(client: KemonoClient, args: argparse.Namespace) -> Result:
    password = args.password
    if password is None:
        password = getpass.getpass("Password: ")
    return report(client.sessions.login_with_credentials(args.username, password))


def cmd_token(client: KemonoClient, args: argparse.Namespace) -> Result:
    return report(client.sessions.validate_token(args.cookie))


def cmd_logout(client: KemonoClient, args: argparse.Namespace) -> Result:
    return report(client.sessions.logout())


def cmd_whoami(client: KemonoClient, args: argparse.Namespace) -> Result:
    session = client.sessions.current_session
    if session is None:
        return report(Result.fail(AuthError("You are not logged in.")))
    print(session.username)
    return Result.ok(session.username)


def cmd_favorites_list(client: KemonoClient, args: argparse.Namespace) -> Result:
    if args.service:
        favorites = client.favorites.for_service(args.service)
    else:
        favorites = client.favorites.sorted_favorites()

    if not favorites:
        print("You have no favorites yet.")
    for favorite in favorites:
        label = settings.SERVICES.get(favorite.service, favorite.service)
        print(f"{favorite.name} ({label}, {favorite.id}) updated {favorite.updated}")
    return Result.ok(favorites)


def cmd_favorites_add(client: KemonoClient, args: argparse.Namespace) -> Result:
    return report(client.favorites.add(args.service, args.creator_id))


def cmd_favorites_remove(client: KemonoClient, args: argparse.Namespace) -> Result:
    return report(client.favorites.remove(args.creator_id, args.service))


def cmd_favorites_import(client: KemonoClient, args: argparse.Namespace) -> Result:
    return report(client.favorites.import_from_account())


def cmd_feed(client: KemonoClient, args: argparse.Namespace) -> Result:
    favorites = client.favorites.sorted_favorites()
    if not favorites:
        print("You have no favorites yet.")
        return Result.ok([])

    result = report(client.feed.fetch_all(favorites))
    if not result.success:
        return result

    pager = FeedPager(result.data)
    for _ in range(max(args.pages, 1) - 1):
        pager.load_more()

    print_posts(pager.visible)
    print(f"Showing {len(pager.visible)} of {len(pager.posts)} posts.")
    if pager.has_more:
        print(f"Use --pages {args.pages + 1} to load more.")
    return result


def cmd_creator(client: KemonoClient, args: argparse.Namespace) -> Result:
    result = report(client.feed.fetch_creator_posts(args.service, args.creator_id))
    if result.success:
        print_posts(result.data)
    return result


def cmd_post(client: KemonoClient, args: argparse.Namespace) -> Result:
    result = report(client.feed.fetch_post(args.service, args.creator_id, args.post_id))
    if result.success:
        print(format_post(result.data, full=True))
    return result


def _print_response(result: Result) -> Result:
    result = report(result)
    if result.success:
        print_data(result.data)
    return result


def cmd_discord(client: KemonoClient, args: argparse.Namespace) -> Result:
    return _print_response(client.api.discord_lookup(args.type, args.query))


def cmd_recent(client: KemonoClient, args: argparse.Namespace) -> Result:
    return _print_response(client.api.get_recent_posts())


def cmd_announcements(client: KemonoClient, args: argparse.Namespace) -> Result:
    return _print_response(client.api.get_announcements())


def _authenticated(client: KemonoClient, action: str, request: Callable[[str], Result]) -> Result:
    """Run a request with the session token, or fail with AuthError when logged out."""
    try:
        token = client.sessions.require_token(action)
    except AuthError as e:
        return Result.fail(e)
    return request(token)


def cmd_moderator_tasks(client: KemonoClient, args: argparse.Namespace) -> Result:
    result = _print_response(_authenticated(client, "view moderator tasks", client.api.get_moderator_tasks))
    if result.success and args.add_all:
        return report(client.favorites.add_all_from_response(result.data))
    return result


def cmd_stickers(client: KemonoClient, args: argparse.Namespace) -> Result:
    return _print_response(_authenticated(
        client, "view stickers", lambda token: client.api.get_account_favorites(token, "sticker")
    ))


def cmd_request_update(client: KemonoClient, args: argparse.Namespace) -> Result:
    return _print_response(_authenticated(
        client, "request an update",
        lambda token: client.api.request_creator_update(token, args.service, args.creator_id)
    ))


COMMANDS: Dict[str, Callable[[KemonoClient, argparse.Namespace], Result]] = {
    'login': cmd_login,
    'token': cmd_token,
    'logout': cmd_logout,
    'whoami': cmd_whoami,
    'favorites list': cmd_favorites_list,
    'favorites add': cmd_favorites_add,
    'favorites remove': cmd_favorites_remove,
    'favorites import': cmd_favorites_import,
    'feed': cmd_feed,
    'creator': cmd_creator,
    'post': cmd_post,
    'discord': cmd_discord,
    'recent': cmd_recent,
    'announcements': cmd_announcements,
    'moderator-tasks': cmd_moderator_tasks,
    'stickers': cmd_stickers,
    'request-update': cmd_request_update,
}


def command_name(args: argparse.Namespace) -> str:
    if args.command == 'favorites':
        return f"favorites {args.favorites_command}"
    return args.command


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Kemono Client')
    parser.add_argument('--log-file', type=str, default=settings.LOG_FILE, help='Log file path')
    parser.add_argument('--log-level', type=str, choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        default=settings.LOG_LEVEL, help='Logging level')

    subparsers = parser.add_subparsers(dest='command', required=True)

    login = subparsers.add_parser('login', help='Log in with username and password')
    login.add_argument('username')
    login.add_argument('--password', default=None, help='Prompted for if omitted')

    token = subparsers.add_parser('token', help='Log in with an existing session cookie')
    token.add_argument('cookie', help="Session cookie, e.g. 'session=...'")

    subparsers.add_parser('logout', help='Clear the active session')
    subparsers.add_parser('whoami', help='Show the logged in user')

    favorites = subparsers.add_parser('favorites', help='Manage favorite creators')
    favorites_sub = favorites.add_subparsers(dest='favorites_command', required=True)
    favorites_list = favorites_sub.add_parser('list', help='List favorites, most recently updated first')
    favorites_list.add_argument('--service', choices=list(settings.SERVICES), default=None)
    favorites_add = favorites_sub.add_parser('add', help='Add a creator')
    favorites_add.add_argument('service', choices=settings.FAVORITABLE_SERVICES)
    favorites_add.add_argument('creator_id')
    favorites_remove = favorites_sub.add_parser('remove', help='Remove a creator')
    favorites_remove.add_argument('service', choices=list(settings.SERVICES))
    favorites_remove.add_argument('creator_id')
    favorites_sub.add_parser('import', help='Import favorites from your Kemono account')

    feed = subparsers.add_parser('feed', help='Show the merged feed of your favorites')
    feed.add_argument('--pages', type=int, default=1,
                      help=f'Number of {settings.FEED_PAGE_SIZE}-post pages to show')

    creator = subparsers.add_parser('creator', help="Show a creator's posts")
    creator.add_argument('service', choices=list(settings.SERVICES))
    creator.add_argument('creator_id')

    post = subparsers.add_parser('post', help='Show a single post')
    post.add_argument('service', choices=list(settings.SERVICES))
    post.add_argument('creator_id')
    post.add_argument('post_id')

    discord = subparsers.add_parser('discord', help='Look up Discord channels, servers or members')
    discord.add_argument('type', choices=settings.DISCORD_LOOKUP_TYPES)
    discord.add_argument('query')

    subparsers.add_parser('recent', help='Show recently imported posts')
    subparsers.add_parser('announcements', help='Show site announcements')

    moderator = subparsers.add_parser('moderator-tasks', help='Show pending creator-link tasks')
    moderator.add_argument('--add-all', action='store_true', help='Add every listed creator to favorites')

    subparsers.add_parser('stickers', help='Show stickers favorited on your account')

    update = subparsers.add_parser('request-update', help='Ask the importer to refresh a creator')
    update.add_argument('service', choices=list(settings.SERVICES))
    update.add_argument('creator_id')

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None, client: Optional[KemonoClient] = None) -> int:
    """Main entry point for the application."""
    # Parse command line arguments
    args = parse_arguments(argv)

    # Set up logging
    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    setup_file_logging(args.log_file, log_level)

    name = command_name(args)
    logger.debug(f"Running command: {name}")

    try:
        if client is None:
            client = KemonoClient()
        result = COMMANDS[name](client, args)

        # Report status
        if result.success:
            exit_code = 0
        else:
            logger.warning(f"Command '{name}' failed: {result.error_message}")
            exit_code = 1

    except Exception as e:
        logger.error(f"Unhandled exception in Kemono client: {e}", exc_info=True)
        exit_code = 2

    logger.debug(f"Command '{name}' finished with exit code {exit_code}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
