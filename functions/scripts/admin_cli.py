"""
Command line admin console for the CMS API.

The session (auth flag, token, cached config) is kept in a per-terminal JSON
file, so `login` once and then run the other commands.
"""

from __future__ import annotations

import argparse
import getpass
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from admin_client.api import AdminApiClient
from admin_client.session_storage import FileSessionStorage
from admin_client.store import RECENT_POSTS_LIMIT, AdminStore, StoreStateError
from shared.api import Banner, HomepageAd, SeoSettings
from shared.types import PostStatus


def _print_json(value) -> None:
    print(json.dumps(value, indent=2, default=str))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="UniUnity admin console")
    parser.add_argument("--api-url", type=str, default=None, help="API base URL")
    parser.add_argument(
        "--session-file", type=Path, default=None, help="Override the session file"
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    login = sub.add_parser("login", help="Authenticate as admin")
    login.add_argument("username")
    login.add_argument("--password", default=None)

    sub.add_parser("logout", help="End the admin session")
    sub.add_parser("status", help="Show session state")
    sub.add_parser("posts", help="List blog posts")
    sub.add_parser("config", help="Show the site configuration")
    stats = sub.add_parser("stats", help="Show post counts and recent activity")
    stats.add_argument("--recent", type=int, default=RECENT_POSTS_LIMIT)

    add = sub.add_parser("add-post", help="Create a blog post")
    add.add_argument("title")
    add.add_argument("content")
    add.add_argument(
        "--seo-title", default=None, help="Defaults to \"<title> | UniUnity\""
    )
    add.add_argument(
        "--seo-description",
        default=None,
        help="Defaults to the first 160 characters of the content",
    )
    add.add_argument("--status", choices=[s.value for s in PostStatus], default=None)

    edit = sub.add_parser("edit-post", help="Update fields of a blog post")
    edit.add_argument("post_id")
    edit.add_argument("--title", default=None)
    edit.add_argument("--content", default=None)
    edit.add_argument("--seo-title", default=None)
    edit.add_argument("--seo-description", default=None)
    edit.add_argument("--status", choices=[s.value for s in PostStatus], default=None)

    remove = sub.add_parser("delete-post", help="Delete a blog post")
    remove.add_argument("post_id")

    set_config = sub.add_parser("set-config", help="Update the site configuration")
    set_config.add_argument("--title", default=None)
    set_config.add_argument("--favicon", default=None)
    set_config.add_argument("--banner-heading", default=None)
    set_config.add_argument("--banner-subtext", default=None)
    set_config.add_argument("--seo-title", default=None)
    set_config.add_argument("--seo-description", default=None)
    set_config.add_argument("--ad-text", default=None)
    set_config.add_argument("--ad-image", default=None)
    set_config.add_argument("--admin-username", default=None)
    set_config.add_argument(
        "--rotate-password",
        action="store_true",
        help="Prompt for the current and a new admin password",
    )

    notify = sub.add_parser("notify", help="Send a push notification (stub)")
    notify.add_argument("message")
    return parser


def _config_changes(store: AdminStore, args: argparse.Namespace) -> dict:
    config = store.config
    changes: dict = {}
    if args.title is not None:
        changes["title"] = args.title
    if args.favicon is not None:
        changes["favicon"] = args.favicon
    if args.banner_heading is not None or args.banner_subtext is not None:
        changes["banner"] = Banner(
            heading=args.banner_heading if args.banner_heading is not None else config.banner.heading,
            subtext=args.banner_subtext if args.banner_subtext is not None else config.banner.subtext,
        )
    if args.seo_title is not None or args.seo_description is not None:
        changes["seo"] = SeoSettings(
            title=args.seo_title if args.seo_title is not None else config.seo.title,
            description=(
                args.seo_description
                if args.seo_description is not None
                else config.seo.description
            ),
            og_image=config.seo.og_image,
        )
    if args.ad_text is not None or args.ad_image is not None:
        changes["homepage_ad"] = HomepageAd(
            text=args.ad_text if args.ad_text is not None else config.homepage_ad.text,
            image=args.ad_image if args.ad_image is not None else config.homepage_ad.image,
        )
    if args.admin_username is not None:
        changes["admin_username"] = args.admin_username
    return changes


def run(args: argparse.Namespace, store: AdminStore) -> bool:
    if args.command == "login":
        password = args.password or getpass.getpass("Password: ")
        if store.is_authenticated:
            store.logout()
        return store.login(args.username, password)
    if args.command == "logout":
        store.logout()
        return True
    if args.command == "status":
        print(store.state.value)
        return True

    if not store.is_authenticated:
        print("Not logged in. Run `login` first.", file=sys.stderr)
        return False

    if args.command == "posts":
        ok = store.initialize()
        if ok:
            _print_json([asdict(post) for post in store.posts])
        return ok
    if args.command == "stats":
        ok = store.initialize()
        if ok:
            summary = store.stats(args.recent)
            _print_json(
                {
                    "total": summary.total,
                    "published": summary.published,
                    "drafts": summary.drafts,
                    "recent": [
                        {"id": post.id, "title": post.title, "createdAt": post.created_at}
                        for post in summary.recent
                    ],
                }
            )
        return ok
    if args.command == "config":
        ok = store.initialize()
        if ok:
            _print_json(store.config.to_json())
        return ok
    if args.command == "add-post":
        return store.add_post(
            args.title,
            args.content,
            seo_title=args.seo_title,
            seo_description=args.seo_description,
            status=args.status,
        )
    if args.command == "edit-post":
        fields = {
            "title": args.title,
            "content": args.content,
            "seo_title": args.seo_title,
            "seo_description": args.seo_description,
            "status": args.status,
        }
        return store.update_post(
            args.post_id, **{k: v for k, v in fields.items() if v is not None}
        )
    if args.command == "delete-post":
        return store.delete_post(args.post_id)
    if args.command == "set-config":
        current_password = admin_password = None
        if args.rotate_password:
            current_password = getpass.getpass("Current password: ") or None
            admin_password = getpass.getpass("New password: ")
        if not store.initialize():
            return False
        return store.update_config(
            current_password=current_password,
            admin_password=admin_password,
            **_config_changes(store, args),
        )
    if args.command == "notify":
        return store.send_notification(args.message)
    raise ValueError(f"Unknown command {args.command}")


def main() -> int:
    args = _build_parser().parse_args()
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )
    store = AdminStore(
        AdminApiClient(base_url=args.api_url),
        storage=FileSessionStorage(args.session_file),
    )
    store.restore()
    try:
        ok = run(args, store)
    except StoreStateError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    if not ok:
        print(store.error or "Request failed", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
