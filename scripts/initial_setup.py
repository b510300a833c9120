"""Create the local data directory and apply database migrations."""
from pathlib import Path

from ticket_notifier.database import run_migrations


def main() -> None:
    data_dir = Path("data")
    data_dir.mkdir(exist_ok=True)
    run_migrations()
    print("Database initialised at", data_dir)


if __name__ == "__main__":
    main()
