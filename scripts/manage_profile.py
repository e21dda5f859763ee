"""CLI for portfolio profile and session management.

Usage::

    uv run python -m scripts.manage_profile <command> [options]

Commands:
    create-profile    Create a profile (tenant) for an account
    set-tier          Change a profile's subscription tier
    set-domain        Bind or clear a custom domain
    list-profiles     List all profiles
    create-session    Issue a login session token for an account
"""

from __future__ import annotations

import argparse
import sys
import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

from profyld.api.routes.username import validate_username
from profyld.auth.sessions import generate_session_token
from profyld.config import settings
from profyld.routing.tenants import SubscriptionTier
from profyld.storage.orm import Profile, UserSession


def get_sync_session() -> Session:
    """Create sync session for CLI operations.

    Uses the same database URL as the async app (psycopg v3
    handles both sync and async natively).
    """
    engine = create_engine(settings.database_url)
    return Session(engine)


def _get_profile(session: Session, username: str) -> Profile:
    profile = session.execute(
        select(Profile).where(Profile.username == username.lower())
    ).scalar_one_or_none()
    if profile is None:
        print(f"Profile not found: {username}", file=sys.stderr)
        sys.exit(1)
    return profile


def create_profile(args: argparse.Namespace) -> None:
    """Create a new profile."""
    error = validate_username(args.username)
    if error is not None:
        print(f"Invalid username: {error}", file=sys.stderr)
        sys.exit(1)

    with get_sync_session() as session:
        existing = session.execute(
            select(Profile).where(Profile.username == args.username)
        ).scalar_one_or_none()
        if existing is not None:
            print(f"Profile already exists: {args.username}", file=sys.stderr)
            sys.exit(1)

        user_id = uuid.UUID(args.user_id) if args.user_id else uuid.uuid4()
        profile = Profile(
            user_id=user_id,
            username=args.username,
            name=args.name,
            subscription_tier=args.tier,
        )
        session.add(profile)
        session.commit()
        print(f"Profile created: {args.username} (user_id: {user_id})")


def set_tier(args: argparse.Namespace) -> None:
    """Change subscription tier."""
    with get_sync_session() as session:
        profile = _get_profile(session, args.username)
        profile.subscription_tier = args.tier
        session.commit()
        print(f"Tier for {args.username}: {args.tier}")


def set_domain(args: argparse.Namespace) -> None:
    """Bind a custom domain, or clear it with --clear."""
    with get_sync_session() as session:
        profile = _get_profile(session, args.username)
        if args.clear:
            profile.custom_domain = None
            profile.custom_domain_verified = False
            session.commit()
            print(f"Custom domain removed for {args.username}")
            return

        domain = args.domain.strip().lower().rstrip(".")
        owner = session.execute(
            select(Profile).where(
                Profile.custom_domain == domain, Profile.id != profile.id
            )
        ).scalar_one_or_none()
        if owner is not None:
            print(f"Domain already in use: {domain}", file=sys.stderr)
            sys.exit(1)

        profile.custom_domain = domain
        profile.custom_domain_verified = args.verified
        session.commit()
        state = "verified" if args.verified else "unverified"
        print(f"Custom domain for {args.username}: {domain} ({state})")


def list_profiles(_args: argparse.Namespace) -> None:
    """List all profiles with tier and domain."""
    with get_sync_session() as session:
        profiles = (
            session.execute(select(Profile).order_by(Profile.username)).scalars().all()
        )

        if not profiles:
            print("No profiles found.")
            return

        print("Profiles:")
        for i, p in enumerate(profiles, 1):
            tier = p.subscription_tier or SubscriptionTier.FREE
            domain = ""
            if p.custom_domain:
                mark = "verified" if p.custom_domain_verified else "unverified"
                domain = f" domain={p.custom_domain} ({mark})"
            print(f"  {i}. {p.username} [{tier}]{domain}")


def create_session(args: argparse.Namespace) -> None:
    """Issue a session token for the profile's account."""
    with get_sync_session() as session:
        profile = _get_profile(session, args.username)
        token, token_hash = generate_session_token()
        session.add(
            UserSession(
                user_id=profile.user_id,
                token_hash=token_hash,
                expires_at=datetime.now(UTC) + timedelta(days=args.days),
            )
        )
        session.commit()

        print(f'Session created for "{args.username}":')
        print(f"   Cookie:  {settings.session_cookie_name}={token}")
        print()
        print("Save this token now -- it cannot be retrieved later!")


def main() -> None:
    """Parse arguments and dispatch to command handler."""
    parser = argparse.ArgumentParser(description="Profile management CLI")
    sub = parser.add_subparsers(dest="command", required=True)
    tiers = [str(t) for t in SubscriptionTier]

    # create-profile
    p = sub.add_parser("create-profile", help="Create a new profile")
    p.add_argument("--username", required=True, help="Username / subdomain")
    p.add_argument("--user-id", default=None, help="Owning account UUID")
    p.add_argument("--name", default=None, help="Display name")
    p.add_argument("--tier", choices=tiers, default="free", help="Subscription tier")

    # set-tier
    p = sub.add_parser("set-tier", help="Change subscription tier")
    p.add_argument("--username", required=True)
    p.add_argument("--tier", choices=tiers, required=True)

    # set-domain
    p = sub.add_parser("set-domain", help="Bind or clear a custom domain")
    p.add_argument("--username", required=True)
    group = p.add_mutually_exclusive_group(required=True)
    group.add_argument("--domain", help="Custom domain, e.g. janedoe.com")
    group.add_argument("--clear", action="store_true", help="Remove the domain")
    p.add_argument("--verified", action="store_true", help="Mark as verified")

    # list-profiles
    sub.add_parser("list-profiles", help="List all profiles")

    # create-session
    p = sub.add_parser("create-session", help="Issue a session token")
    p.add_argument("--username", required=True)
    p.add_argument("--days", type=int, default=settings.session_ttl_days)

    args = parser.parse_args()
    commands: dict[str, Callable[[argparse.Namespace], None]] = {
        "create-profile": create_profile,
        "set-tier": set_tier,
        "set-domain": set_domain,
        "list-profiles": list_profiles,
        "create-session": create_session,
    }
    commands[args.command](args)


if __name__ == "__main__":
    main()
