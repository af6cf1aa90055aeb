"""Temporal client factory.

Creates connections to a Temporal server (local dev server or Temporal Cloud)
using credentials from environment.
"""

import os
from typing import Optional, Union
from pathlib import Path

# Load .env file if it exists
from dotenv import load_dotenv
env_path = Path(__file__).resolve().parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

from temporalio.client import Client
from temporalio.service import TLSConfig


DEFAULT_ENDPOINT = "localhost:7233"


def build_tls_config(api_key: Optional[str], cert_path: Optional[str]) -> Union[bool, TLSConfig]:
    """TLS settings for Temporal Cloud, or False for a plaintext local server.

    `cert_path` points to a PEM file holding both client certificate and key.
    """
    if cert_path:
        pem = Path(cert_path).read_bytes()
        return TLSConfig(client_cert=pem, client_private_key=pem)
    return bool(api_key)


async def get_temporal_client() -> Client:
    """Create and return a connected Temporal client.

    Reads configuration from environment variables:
    - TEMPORAL_ENDPOINT: Server address (default: "localhost:7233")
    - TEMPORAL_NAMESPACE: Namespace (default: "default")
    - TEMPORAL_API_KEY: API key for Temporal Cloud (enables TLS)
    - TEMPORAL_CERT_PATH: Path to client certificate (optional, for mTLS)

    Returns:
        Configured Temporal client

    Raises:
        ValueError: If TEMPORAL_ENDPOINT is set but empty
    """
    endpoint = os.getenv("TEMPORAL_ENDPOINT", DEFAULT_ENDPOINT)
    namespace = os.getenv("TEMPORAL_NAMESPACE", "default")
    api_key = os.getenv("TEMPORAL_API_KEY")
    cert_path = os.getenv("TEMPORAL_CERT_PATH")

    if not endpoint.strip():
        raise ValueError(
            "TEMPORAL_ENDPOINT environment variable is empty. "
            "Set to your Temporal endpoint (e.g., 'localhost:7233')"
        )

    client = await Client.connect(
        target_host=endpoint,
        namespace=namespace,
        tls=build_tls_config(api_key, cert_path),
        api_key=api_key,
    )

    return client
