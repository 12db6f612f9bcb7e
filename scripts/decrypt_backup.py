import json
import sys
from getpass import getpass
from pathlib import Path

from tosync_auth.backup import import_backup
from tosync_auth.errors import BackupFormatError, DecryptionFailed


def main():
    if len(sys.argv) != 3:
        sys.exit("usage: decrypt_backup.py BACKUP.json.encrypted OUT.json")

    text = Path(sys.argv[1]).read_text(encoding="utf-8")
    try:
        data = import_backup(text, getpass("Backup password: "))
    except (BackupFormatError, DecryptionFailed) as exc:
        sys.exit(str(exc))

    Path(sys.argv[2]).write_text(json.dumps(data, indent=2), encoding="utf-8")
    print("Decrypted backup written to", sys.argv[2])


if __name__ == "__main__":
    main()
