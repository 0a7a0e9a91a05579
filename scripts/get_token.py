#!/usr/bin/env python3
"""
Gmail OAuth Token Generator

Run this script once to authorize the email channel. It stores the token in
google-token.json inside DATA_PATH, where the service picks it up and refreshes
it as needed.

Usage:
    python scripts/get_token.py

Follow the prompts:
1. Click the generated URL
2. Authorize on Google as EMAIL_FROM
3. Copy the 'code' parameter from the failed redirect URL
4. Paste it into the terminal
"""

import asyncio
import sys
from pathlib import Path

# Add parent directory to path so we can import pipeline_notify
sys.path.insert(0, str(Path(__file__).parent.parent))

import httpx
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from pipeline_notify.auth.google import GMAIL_SEND_SCOPES, TOKEN_FILENAME, CredentialManager
from pipeline_notify.config import Settings
from pipeline_notify.files import data_file_path


async def main():
    settings = Settings()
    credentials = CredentialManager.from_settings(settings)

    print("=" * 60)
    print("Gmail OAuth Token Generator")
    print("=" * 60)
    print()
    print("This will store a token with the following scopes:")
    for scope in GMAIL_SEND_SCOPES:
        print(f"  - {scope}")
    print()

    if not credentials.oauth.client_id:
        print("ERROR: no Google OAuth client configured.")
        print("Add google-credentials.json to DATA_PATH, or set")
        print("GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET in .env")
        sys.exit(1)

    auth_url = credentials.oauth.get_auth_url(state="token-generator", login_hint=settings.email_from or None)

    print("Step 1: Visit this URL in your browser:")
    print()
    print(auth_url)
    print()
    print("Step 2: After authorizing, Google will try to redirect to:")
    print(f"  {credentials.oauth.redirect_uri}/?code=...")
    print()
    print("The page will fail to load (that's expected).")
    print()
    print("Step 3: Copy the ENTIRE URL from your browser's address bar,")
    print("or just the 'code' value, and paste it here.")
    print()

    user_input = input("Paste here: ").strip()

    # Extract code if they pasted the full URL
    if "code=" in user_input:
        code = user_input.split("code=")[1].split("&")[0]
    else:
        code = user_input

    print()
    print("Exchanging code for tokens...")

    try:
        token = await credentials.save_from_code(code)
    except httpx.HTTPError as e:
        print()
        print("ERROR:", str(e))
        print()
        print("Make sure you:")
        print("  1. Copied the entire code value")
        print("  2. Configured the Google OAuth client (file or .env)")
        print("  3. Set the same redirect URI in Google Cloud Console")
        sys.exit(1)

    print()
    print("=" * 60)
    print("SUCCESS! Token saved to:")
    print(f"  {data_file_path(TOKEN_FILENAME, settings.data_path)}")
    print("=" * 60)
    if not token.refresh_token:
        print()
        print("WARNING: Google returned no refresh token; the token will")
        print("stop working when it expires. Revoke access and run again.")
    print()


if __name__ == "__main__":
    asyncio.run(main())
