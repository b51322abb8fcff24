"""
Excel Sales Ledger with Concurrency Control

Every completed order is appended to its restaurant's sales workbook
(``<data>/sales_<owner_id>.xlsx``). Several Celery workers may export at
once, so each workbook is guarded by its own file lock.

The owner's downloadable sales report is built in memory from database
rows with the same columns plus a per-day summary sheet.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Any, Iterable, Optional
from zipfile import BadZipFile

import pandas as pd
from filelock import FileLock, Timeout

from menumagi.core.config import get_settings

logger = logging.getLogger(__name__)


SALES_COLUMNS = [
    "invoice_number",
    "order_id",
    "date",
    "date_time",
    "table_number",
    "customer_name",
    "customer_phone",
    "items",
    "subtotal",
    "cgst",
    "sgst",
    "igst",
    "tax",
    "total",
    "payment_method",
    "payment_status",
    "status",
]

DAILY_COLUMNS = ["date", "orders", "subtotal", "tax", "total"]


def sales_row(order_data: dict[str, Any]) -> dict[str, Any]:
    """Flatten an order payload into one ledger row."""
    created_at = order_data.get("created_at") or datetime.now().isoformat()
    items = ", ".join(
        f"{item['quantity']}x {item['name']}" for item in order_data.get("items", [])
    )
    return {
        "invoice_number": order_data.get("invoice_number"),
        "order_id": order_data.get("id"),
        "date": created_at[:10],
        "date_time": created_at,
        "table_number": order_data.get("table_number"),
        "customer_name": order_data.get("customer_name"),
        "customer_phone": order_data.get("customer_phone"),
        "items": items,
        "subtotal": order_data.get("subtotal"),
        "cgst": order_data.get("cgst"),
        "sgst": order_data.get("sgst"),
        "igst": order_data.get("igst"),
        "tax": order_data.get("tax"),
        "total": order_data.get("total"),
        "payment_method": order_data.get("payment_method"),
        "payment_status": order_data.get("payment_status"),
        "status": order_data.get("status"),
    }


def daily_summary(df: pd.DataFrame) -> pd.DataFrame:
    """Orders, subtotal, tax and total per day, newest first."""
    if df.empty:
        return pd.DataFrame(columns=DAILY_COLUMNS)
    summary = (
        df.groupby("date")
        .agg(
            orders=("order_id", "count"),
            subtotal=("subtotal", "sum"),
            tax=("tax", "sum"),
            total=("total", "sum"),
        )
        .reset_index()
        .sort_values("date", ascending=False)
    )
    return summary[DAILY_COLUMNS].round(2)


def build_sales_report(rows: Iterable[dict[str, Any]]) -> bytes:
    """Workbook with an ``Orders`` sheet and a ``Daily`` summary sheet."""
    df = pd.DataFrame(list(rows), columns=SALES_COLUMNS)
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name="Orders", index=False)
        daily_summary(df).to_excel(writer, sheet_name="Daily", index=False)
    return buffer.getvalue()


class ExcelManager:
    """Per-restaurant sales workbooks guarded by file locks."""

    @staticmethod
    def _data_dir() -> Path:
        data_dir = Path(get_settings().data_directory)
        if not data_dir.exists():
            data_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {data_dir}")
        return data_dir

    @classmethod
    def ledger_path(cls, owner_id: str) -> Path:
        return cls._data_dir() / f"sales_{owner_id}.xlsx"

    @classmethod
    def _load_or_create_df(cls, file_path: Path) -> pd.DataFrame:
        """Load an existing ledger; a corrupt one is set aside and restarted."""
        if not file_path.exists():
            return pd.DataFrame(columns=SALES_COLUMNS)
        try:
            return pd.read_excel(file_path, engine="openpyxl", dtype={"date": str})
        except (BadZipFile, ValueError, OSError) as e:
            backup = file_path.with_name(f"{file_path.name}.corrupt-{datetime.now():%Y%m%d%H%M%S}")
            file_path.rename(backup)
            logger.error(f"Unreadable ledger {file_path.name} moved to {backup.name}: {e}")
            return pd.DataFrame(columns=SALES_COLUMNS)

    @classmethod
    def export_order(cls, order_data: dict[str, Any]) -> dict[str, Any]:
        """
        Append a completed order to its restaurant's ledger.

        Re-exporting an order already in the ledger is a no-op, so task
        retries never duplicate rows.
        """
        owner_id = order_data["owner_id"]
        order_id = order_data["id"]
        file_path = cls.ledger_path(owner_id)
        lock_timeout = get_settings().excel_lock_timeout

        result = {
            "success": False,
            "message": "",
            "order_id": order_id,
            "exported_at": None,
        }

        try:
            with FileLock(f"{file_path}.lock", timeout=lock_timeout):
                logger.debug(f"Lock acquired for order {order_id}")

                df = cls._load_or_create_df(file_path)
                export_time = datetime.now().isoformat()

                if order_id in set(df["order_id"].astype(str)):
                    result["success"] = True
                    result["message"] = f"Order {order_id} already exported"
                    result["exported_at"] = export_time
                    return result

                df = pd.concat([df, pd.DataFrame([sales_row(order_data)])], ignore_index=True)
                df.to_excel(str(file_path), index=False, engine="openpyxl")

                logger.info(f"Order {order_data.get('invoice_number')} exported to {file_path.name}")

                result["success"] = True
                result["message"] = f"Order {order_id} exported"
                result["exported_at"] = export_time

            logger.debug(f"Lock released for order {order_id}")

        except Timeout:
            result["message"] = f"Lock timeout ({lock_timeout}s)"
            logger.error(f"Lock timeout for order {order_id}")

        return result

    @classmethod
    def get_ledger(cls, owner_id: str) -> list[dict[str, Any]]:
        """All exported rows for one restaurant."""
        file_path = cls.ledger_path(owner_id)
        if not file_path.exists():
            return []
        df = pd.read_excel(file_path, engine="openpyxl", dtype={"date": str})
        return df.to_dict("records")

    @classmethod
    def list_ledgers(cls) -> list[Path]:
        return sorted(cls._data_dir().glob("sales_*.xlsx"))

    @classmethod
    def clear(cls, owner_id: Optional[str] = None) -> int:
        """Delete one ledger (or all of them). Returns files removed."""
        paths = [cls.ledger_path(owner_id)] if owner_id else cls.list_ledgers()
        removed = 0
        for path in paths:
            for candidate in (path, Path(f"{path}.lock")):
                if candidate.exists():
                    candidate.unlink()
                    removed += 1
        logger.info(f"Cleared {removed} ledger file(s)")
        return removed
