import os
import sys

import requests

base_url = os.getenv("BANDHUB_BASE_URL", "http://localhost:8000").rstrip("/")
access_token = os.getenv("BANDHUB_ACCESS_TOKEN")

if not access_token:
    raise RuntimeError("BANDHUB_ACCESS_TOKEN is required")

headers = {"Authorization": f"Bearer {access_token}"}


def main() -> int:
    bands_response = requests.get(f"{base_url}/me/bands", headers=headers, timeout=15)
    bands_response.raise_for_status()

    invitations_response = requests.get(f"{base_url}/me/invitations", headers=headers, timeout=15)
    invitations_response.raise_for_status()

    bands = bands_response.json()["items"]
    invitations = invitations_response.json()["items"]
    print(f"Bands: {len(bands)}")
    for band in bands:
        print(f"  {band['name']} ({len(band['members'])} active members)")
    print(f"Open invitations: {len(invitations)}")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except requests.RequestException as exc:
        print(f"BandHub API probe failed: {exc}", file=sys.stderr)
        raise SystemExit(1)
