from typing import Any, Dict, List

import pandas as pd
import plotly.express as px


def client_status_chart(rows: List[Dict[str, Any]]):
    df = pd.DataFrame(rows, columns=["status", "count"])
    return px.bar(df, x="status", y="count", title="Clients by status")


def plan_level_chart(rows: List[Dict[str, Any]]):
    df = pd.DataFrame(rows, columns=["level", "count", "avg_price", "avg_duration"])
    return px.bar(df, x="level", y="count", hover_data=["avg_price", "avg_duration"], title="Plans by level")


def finance_chart(summary: Dict[str, Any]):
    df = pd.DataFrame(summary.get("by_category") or [], columns=["type", "category", "total", "count"])
    return px.bar(df, x="category", y="total", color="type", barmode="group", title="Income and expenses by category")


def contracts_table(contracts: List[Dict[str, Any]]) -> pd.DataFrame:
    cols = ["id", "client_id", "plan_id", "start_date", "end_date", "price", "status"]
    df = pd.DataFrame(contracts, columns=cols)
    for c in ("start_date", "end_date"):
        df[c] = pd.to_datetime(df[c], errors="coerce").dt.date
    return df
