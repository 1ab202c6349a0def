import os
from datetime import datetime

import streamlit as st

from components.charts import client_status_chart, contracts_table, finance_chart, plan_level_chart
from components.studio_api import StudioAPI, StudioAPIError

API_URL = os.getenv("API_URL", "http://127.0.0.1:8000")
API_KEY = os.getenv("API_KEY", "")

st.set_page_config(page_title="Gym Studio", layout="wide")
st.title("🏋️ Studio Overview")

refresh_rate = st.sidebar.slider("Cache lifetime (seconds)", 10, 120, 30)
manual_refresh = st.sidebar.button("🔄 Refresh Now")
days = st.sidebar.number_input("Expiring within (days)", min_value=1, max_value=90, value=7)

api = StudioAPI(API_URL, API_KEY)


@st.cache_data(ttl=refresh_rate)
def load_overview(window: int):
    return {
        "clients": api.report("clients"),
        "plans": api.report("plans"),
        "finance": api.report("finance"),
        "expiring": api.expiring(window),
        "expired": api.expired(),
    }


if manual_refresh:
    st.cache_data.clear()

try:
    data = load_overview(int(days))
except StudioAPIError as e:
    st.error(f"API error: {e.detail}")
    st.stop()

tabs = st.tabs(["👥 Clients & Plans", "📄 Contracts", "💶 Finance"])
with tabs[0]:
    c1, c2 = st.columns(2)
    c1.plotly_chart(client_status_chart(data["clients"]), use_container_width=True)
    c2.plotly_chart(plan_level_chart(data["plans"]), use_container_width=True)
with tabs[1]:
    st.subheader(f"Expiring in the next {int(days)} days")
    st.dataframe(contracts_table(data["expiring"]), use_container_width=True)
    st.subheader("Past end date, still active")
    st.dataframe(contracts_table(data["expired"]), use_container_width=True)
with tabs[2]:
    fin = data["finance"]
    m1, m2, m3 = st.columns(3)
    m1.metric("Income", f"{fin['income']:.2f}")
    m2.metric("Expenses", f"{fin['expense']:.2f}")
    m3.metric("Balance", f"{fin['balance']:.2f}")
    st.plotly_chart(finance_chart(fin), use_container_width=True)

st.caption(f"Last updated: {datetime.now().strftime('%H:%M:%S')} | API: {API_URL}")
