import sys
from pathlib import Path

import requests

API_URL = "http://localhost:8000"


def request_encrypted_backup(backup_path: Path, password: str, api_url: str = API_URL) -> Path:
    """
    Send a plaintext backup to a running service for encryption and save
    the result next to it as <name>.json.encrypted.
    """
    # 1. Read plaintext backup JSON
    data = backup_path.read_text(encoding="utf-8")

    # 2. Send POST request
    resp = requests.post(
        f"{api_url}/backup/encrypt",
        json={"password": password, "data": data},
        timeout=60,
    )

    # Raise if HTTP error (4xx/5xx)
    resp.raise_for_status()

    payload = resp.json()
    if not all(key in payload for key in ("salt", "iv", "data")):
        raise RuntimeError(f"API error: {payload}")

    # 3. Save encrypted payload
    out_path = backup_path.with_suffix(".json.encrypted")
    out_path.write_text(resp.text, encoding="utf-8")
    print(f"Encrypted backup saved to {out_path}")
    return out_path


if __name__ == "__main__":
    from getpass import getpass

    if len(sys.argv) != 2:
        sys.exit("usage: request_backup.py BACKUP.json")
    request_encrypted_backup(Path(sys.argv[1]), getpass("Backup password: "))
