#!/usr/bin/env python3
"""Edit a WhatsApp business profile from the terminal.

This script:
1. Loads the current profile for a phone number ID
2. Diffs it against the values given on the command line
3. Shows the diff and asks for confirmation (skip with --yes)
4. Sends only the changed, non-empty fields
5. Optionally replaces the profile photo from a file or an https URL

Usage:
    python scripts/edit_profile.py --phone-number-id 1234 --about "Open 9-5" \\
        --website https://example.com --photo logo.png

Requirements:
    - WA_ACCESS_TOKEN environment variable (or --token)
    - APP_ID environment variable for photo upload

Note:
    - Blank values are ignored, fields cannot be cleared
    - At most two websites are kept
"""

import argparse
import asyncio
import mimetypes
import os
import sys
from pathlib import Path

# Add parent directory to path to import from src
sys.path.insert(0, str(Path(__file__).parent.parent))

import httpx

from src.core.config import get_settings
from src.core.exceptions import ProfileManagerError, describe_error
from src.core.graph import GraphCredentials, GraphProfileGateway, create_http_client
from src.schemas.profile import SCALAR_FIELDS, ProfileFields
from src.services.editing_session import EditingSession
from src.services.photo_upload_service import PhotoUploadService
from src.services.profile_update_service import ProfileUpdateService


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Edit a WhatsApp business profile")
    parser.add_argument("--phone-number-id", required=True, help="WhatsApp phone number ID")
    parser.add_argument("--token", default=os.environ.get("WA_ACCESS_TOKEN", ""), help="Access token")
    for name in SCALAR_FIELDS:
        parser.add_argument(f"--{name}", default="", help=f"New {name}")
    parser.add_argument(
        "--website",
        action="append",
        default=None,
        help="Website URL, repeat for a second one. Replaces the current list.",
    )
    photo = parser.add_mutually_exclusive_group()
    photo.add_argument("--photo", type=Path, help="Path to a JPG or PNG file")
    photo.add_argument("--photo-url", help="https URL of a JPG or PNG image")
    parser.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    return parser.parse_args(argv)


def build_proposal(args: argparse.Namespace, baseline: ProfileFields) -> ProfileFields:
    """Start from the baseline and overlay the values given on the command line."""
    values = baseline.model_dump()
    for name in SCALAR_FIELDS:
        value = getattr(args, name)
        if value:
            values[name] = value
    if args.website is not None:
        values["websites"] = args.website
    return ProfileFields.model_validate(values)


def confirm(prompt: str) -> bool:
    return input(f"{prompt} [y/N] ").strip().lower() in ("y", "yes")


async def update_fields(args: argparse.Namespace, editor: EditingSession, service: ProfileUpdateService) -> None:
    result = editor.stage(build_proposal(args, editor.baseline))
    if result.is_empty:
        print("No changes to update.")
        return

    print("\n📝 Pending changes:")
    for diff in result.diffs:
        print(f"   {diff.field}")
        print(f"      Old: {diff.old}")
        print(f"      New: {diff.new}")

    if not args.yes and not confirm("\nApply these changes?"):
        editor.discard()
        print("Cancelled.")
        return

    await service.submit(editor.entity_id, editor.credentials, editor.take_pending())
    editor.commit()
    print("✓ Updated")


async def update_photo(
    args: argparse.Namespace,
    editor: EditingSession,
    service: PhotoUploadService,
) -> None:
    if args.photo:
        mime_type, _ = mimetypes.guess_type(args.photo.name)
        media = service.validate_media(args.photo.read_bytes(), mime_type)
    else:
        media = await service.fetch_source(args.photo_url)

    print(f"\n🖼  Uploading photo ({media.byte_length} bytes, {media.mime_type})...")
    result = await service.upload(editor.entity_id, editor.credentials, media)
    print(f"✓ Photo updated (upload {result.upload_id})")


async def main(argv: list[str] | None = None) -> int:
    """Main execution function."""
    args = parse_args(argv)
    if not args.token:
        print("❌ Error: provide --token or set WA_ACCESS_TOKEN")
        return 1

    settings = get_settings()
    editor = EditingSession(
        entity_id=args.phone_number_id.strip(),
        credentials=GraphCredentials(access_token=args.token.strip()),
    )

    async with create_http_client(settings) as client:
        gateway = GraphProfileGateway(client, settings)
        profile_service = ProfileUpdateService(gateway, settings)
        photo_service = PhotoUploadService(gateway, http_client=client, settings=settings)

        try:
            print("📋 Loading profile...")
            _, data = await profile_service.load_profile(editor.entity_id, editor.credentials)
            editor.load(data)
            print("✓ Loaded")

            await update_fields(args, editor, profile_service)

            if args.photo or args.photo_url:
                await update_photo(args, editor, photo_service)
        except ProfileManagerError as e:
            print(f"❌ Error: {describe_error(e)}")
            return 1
        except (OSError, httpx.HTTPError) as e:
            print(f"❌ Error: {e}")
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
