import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from models import format_timestamp
from repository import load_log

CSV_COLUMNS = ["ChatId", "UserId", "Username", "Language", "FullName", "AvecFullName", "AvecUsername", "Timestamp"]
CSV_HEADER = ",".join(CSV_COLUMNS)


def csv_field(value) -> str:
    value = "" if value is None else str(value)
    if any(ch in value for ch in ',"\n\r'):
        return '"' + value.replace('"', '""') + '"'
    return value


def csv_row(record) -> str:
    return ",".join(csv_field(v) for v in (
        record.chat_id,
        record.user_id,
        record.telegram_username,
        record.language,
        record.full_name,
        record.avec_full_name,
        record.avec_username,
        format_timestamp(record.timestamp),
    ))


def render_csv(records) -> str:
    lines = [CSV_HEADER]
    lines.extend(csv_row(r) for r in records)
    return "\n".join(lines) + "\n"


def write_csv(records, output_path) -> int:
    records = list(records)
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8", newline="") as f:
        f.write(render_csv(records))
    return len(records)


def export_csv(output_path, input_path) -> int:
    """Write the current guest list of the log at input_path as CSV.

    Only the newest record of each guest counts, and guests whose newest
    record is Deleted are left out. A missing log gives a header-only file.
    """
    input_path = Path(input_path)
    if not input_path.exists():
        logging.info(f"No guest log at {input_path}, writing empty CSV to {output_path}")
        return write_csv([], output_path)
    rows = write_csv(load_log(input_path).active(), output_path)
    logging.info(f"Exported {rows} guest(s) to {output_path}")
    return rows


def export_filename(now=None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"rsvps-{now:%Y%m%d-%H%M%S}.csv"


def main(argv=None):
    import config

    parser = argparse.ArgumentParser(description="Export the current guest list as CSV.")
    parser.add_argument("output", nargs="?", default=str(config.data_dir() / "rsvps.csv"), help="CSV file to write")
    parser.add_argument("input", nargs="?", default=str(config.guests_path()), help="Guest log (JSON lines)")
    args = parser.parse_args(argv)

    rows = export_csv(args.output, args.input)
    print(f"Exported {rows} guest(s) to {args.output}.")
    return 0


if __name__ == "__main__":
    logging.basicConfig(format='%(asctime)s - %(name)s - %(levelname)s - %(message)s', level=logging.INFO)
    sys.exit(main())
