"""OAuth2 bootstrap for Google Drive and token persistence."""

import json
import logging
import os
from pathlib import Path

import typer
from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/drive"]
LOCAL_SERVER_PORT = 8080
OOB_REDIRECT_URIS = ("urn:ietf:wg:oauth:2.0:oob", "oob")


def load_token(token_path: Path) -> Credentials | None:
    if not token_path.exists():
        return None
    try:
        return Credentials.from_authorized_user_file(str(token_path), SCOPES)
    except (ValueError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable token file {token_path}: {e}")
        return None


def save_token(token_path: Path, creds: Credentials) -> None:
    token_path.parent.mkdir(parents=True, exist_ok=True)
    token_path.write_text(creds.to_json(), encoding="utf-8")
    os.chmod(token_path, 0o600)


def run_consent_flow(credentials_path: Path, force_consent: bool = False) -> Credentials:
    if not credentials_path.exists():
        raise FileNotFoundError(
            f"Credentials file not found: {credentials_path}\n"
            "Download credentials.json from the Google Cloud Console:\n"
            "https://console.cloud.google.com/apis/credentials"
        )

    flow = InstalledAppFlow.from_client_secrets_file(str(credentials_path), SCOPES)
    extra = {"prompt": "consent"} if force_consent else {}

    typer.echo("\n🔐 Google Drive authorization")
    oob_uri = out_of_band_redirect(flow.client_config)
    if oob_uri is not None:
        return _manual_flow(flow, oob_uri, extra)

    typer.echo("  Opening the browser for authentication...")
    return flow.run_local_server(
        port=LOCAL_SERVER_PORT,
        access_type="offline",
        authorization_prompt_message="  If the browser does not open, visit:\n  {url}",
        success_message="Authentication complete. You can close this window.",
        open_browser=True,
        **extra,
    )


def out_of_band_redirect(client_config: dict) -> str | None:
    """The copy-paste redirect URI of a desktop client, if it declares one."""
    for uri in client_config.get("redirect_uris") or []:
        if uri in OOB_REDIRECT_URIS:
            return uri
    return None


def _manual_flow(flow: InstalledAppFlow, redirect_uri: str, extra: dict) -> Credentials:
    # No local redirect: the user pastes the code shown by Google
    flow.redirect_uri = redirect_uri
    auth_url, _ = flow.authorization_url(access_type="offline", **extra)
    typer.echo("  Open this link in your browser:")
    typer.echo(f"  {auth_url}\n")
    code = typer.prompt("  Paste the authorization code here").strip()
    if not code:
        raise ValueError("Authorization code cannot be empty")
    flow.fetch_token(code=code)
    typer.echo("  ✓ Token obtained")
    return flow.credentials


def get_credentials(
    credentials_path: Path, token_path: Path, force: bool = False
) -> Credentials:
    """Load the cached token, refreshing or re-consenting when needed."""
    creds = None if force else load_token(token_path)

    if creds is not None and not creds.refresh_token:
        # Without a refresh token the session dies with the access token
        logger.warning("Token has no refresh_token, asking for consent again")
        creds = None
        force = True

    if creds is not None and not creds.valid and creds.expired:
        try:
            creds.refresh(Request())
        except RefreshError as e:
            logger.warning(f"Token refresh failed, re-authenticating: {e}")
            creds = None

    if creds is None:
        creds = run_consent_flow(credentials_path, force_consent=force)
        try:
            save_token(token_path, creds)
        except OSError as e:
            logger.warning(f"Could not save token: {e}")

    return creds


def build_drive_service(credentials_path: Path, token_path: Path, force: bool = False):
    creds = get_credentials(credentials_path, token_path, force=force)
    service = build("drive", "v3", credentials=creds, cache_discovery=False)
    logger.info("Connected to Google Drive")
    return service
