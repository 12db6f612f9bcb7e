import sys
from getpass import getpass
from pathlib import Path

from tosync_auth.backup import backup_filename, export_backup, parse_backup
from tosync_auth.crypto_utils import EncryptedPayload
from tosync_auth.errors import BackupFormatError


def main():
    if len(sys.argv) != 2:
        sys.exit("usage: encrypt_backup.py BACKUP.json")

    text = Path(sys.argv[1]).read_text(encoding="utf-8")
    try:
        data = parse_backup(text)
    except BackupFormatError as exc:
        sys.exit(str(exc))
    if isinstance(data, EncryptedPayload):
        sys.exit("Backup is already encrypted")

    password = getpass("Backup password: ")
    if password != getpass("Confirm password: "):
        sys.exit("Passwords do not match")

    out_path = Path(backup_filename())
    out_path.write_text(export_backup(data, password), encoding="utf-8")
    print("Encrypted backup saved to", out_path)


if __name__ == "__main__":
    main()
