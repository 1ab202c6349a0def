import os

import streamlit as st

from components.charts import contracts_table
from components.studio_api import StudioAPI, StudioAPIError

st.set_page_config(page_title="Contracts", layout="wide")
st.title("📄 Contracts")

api = StudioAPI(os.getenv("API_URL", "http://127.0.0.1:8000"), os.getenv("API_KEY", ""))

try:
    clients = api.clients(status="active")
    plans = api.plans(active=True)
except StudioAPIError as e:
    st.error(f"API error: {e.detail}")
    st.stop()

client_names = {c["id"]: f"{c['last_name']}, {c['first_name']}" for c in clients}
plan_names = {p["id"]: f"{p['name']} ({p['duration']} wk, {p['price']:.2f})" for p in plans}

# ---------------- Assign ----------------
with st.form("assign"):
    st.subheader("Assign a plan")
    client_id = st.selectbox("Client", list(client_names), format_func=client_names.get)
    plan_id = st.selectbox("Plan", list(plan_names), format_func=plan_names.get)
    start = st.date_input("Start date")
    schedule = st.selectbox("Payment schedule", ["monthly", "weekly", "full"])
    if st.form_submit_button("Assign") and client_id and plan_id:
        try:
            c = api.assign(client_id, plan_id, start.isoformat(), schedule)
            st.success(f"Contract {c['id']} active until {c['end_date'][:10]}")
        except StudioAPIError as e:
            st.error(e.detail)

# ---------------- Client contracts ----------------
st.subheader("Client contracts")
selected = st.selectbox("Show contracts for", list(client_names), format_func=client_names.get, key="show")
if selected:
    detail = api.client_contracts(selected)
    st.dataframe(contracts_table(detail["contracts"]), use_container_width=True)

    contract_id = st.text_input("Contract id")
    c1, c2, c3 = st.columns(3)
    weeks = c1.number_input("Weeks to add", min_value=1, max_value=52, value=4)
    reason = c2.text_input("Cancellation reason")
    action = c3.radio("Action", ["renew", "cancel", "complete"])
    if st.button("Apply") and contract_id:
        try:
            if action == "renew":
                res = api.renew(contract_id, int(weeks))
            elif action == "cancel":
                res = api.cancel(contract_id, reason)
            else:
                res = api.complete(contract_id)
            st.success(f"Contract {res['id']} is now {res['status']} (ends {res['end_date'][:10]})")
        except StudioAPIError as e:
            st.error(e.detail)
