from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd

from gym_backend.gateway import Gateway
from gym_backend.validators import as_datetime


def _frame(rows: List[Dict[str, Any]], columns: List[str]) -> pd.DataFrame:
    return pd.DataFrame(rows, columns=columns)


def clients_by_status(df_clients: pd.DataFrame) -> List[Dict[str, Any]]:
    if df_clients.empty:
        return []
    counts = df_clients.groupby("status").size().sort_index()
    return [{"status": status, "count": int(n)} for status, n in counts.items()]


def plans_by_level(df_plans: pd.DataFrame) -> List[Dict[str, Any]]:
    if df_plans.empty:
        return []
    agg = df_plans.groupby("level").agg(
        count=("id", "size"), avg_price=("price", "mean"), avg_duration=("duration", "mean")
    )
    return [
        {
            "level": level,
            "count": int(row["count"]),
            "avg_price": round(float(row["avg_price"]), 2),
            "avg_duration": round(float(row["avg_duration"]), 2),
        }
        for level, row in agg.sort_index().iterrows()
    ]


def financial_summary(df_records: pd.DataFrame) -> Dict[str, Any]:
    if df_records.empty:
        return {"income": 0.0, "expense": 0.0, "balance": 0.0, "by_category": []}
    totals = df_records.groupby("type")["amount"].sum()
    income = float(totals.get("income", 0.0))
    expense = float(totals.get("expense", 0.0))
    cats = df_records.groupby(["type", "category"])["amount"].agg(["sum", "size"]).reset_index()
    return {
        "income": round(income, 2),
        "expense": round(expense, 2),
        "balance": round(income - expense, 2),
        "by_category": [
            {"type": r["type"], "category": r["category"], "total": round(float(r["sum"]), 2), "count": int(r["size"])}
            for _, r in cats.iterrows()
        ],
    }


class ReportService:
    def __init__(self, gateway: Gateway):
        self.gateway = gateway

    def clients(self) -> List[Dict[str, Any]]:
        return clients_by_status(_frame(self.gateway.find_by_filter("clients"), ["id", "status"]))

    def plans(self) -> List[Dict[str, Any]]:
        rows = self.gateway.find_by_filter("training_plans")
        return plans_by_level(_frame(rows, ["id", "level", "price", "duration"]))

    def finance(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> Dict[str, Any]:
        flt: Dict[str, Any] = {}
        if start:
            flt["date__gte"] = as_datetime(start)
        if end:
            flt["date__lte"] = as_datetime(end)
        rows = self.gateway.find_by_filter("financial_records", flt)
        return financial_summary(_frame(rows, ["type", "category", "amount", "date"]))
