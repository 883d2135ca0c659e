import logging
import os
from typing import Optional

import pandas as pd
import streamlit as st
from supabase import Client, create_client

import api_client
import client_configurations as cc
from logging_setup import setup_logging
from pricing_engine import CalculationInput, calculate, validate_calculation_input

setup_logging()
logger = logging.getLogger(__name__)

SUPABASE_URL = (os.environ.get("SUPABASE_URL") or "").strip()
SUPABASE_ANON_KEY = (os.environ.get("SUPABASE_ANON_KEY") or "").strip()


# ----------------------------
# Sign-in (Supabase email OTP)
# ----------------------------
def _sb() -> Optional[Client]:
    if not SUPABASE_URL or not SUPABASE_ANON_KEY:
        return None
    return create_client(SUPABASE_URL, SUPABASE_ANON_KEY)


def _access_token() -> Optional[str]:
    return (st.session_state.get("auth") or {}).get("access_token")


def _render_auth_sidebar() -> None:
    with st.sidebar:
        st.subheader("Connection")
        st.code(api_client.API_BASE)

        st.divider()
        st.subheader("Login")

        if _access_token():
            st.success(f"Logged in as: {st.session_state.auth.get('email')}")
            if st.button("Log out"):
                st.session_state.auth = {}
                st.rerun()
            return

        client = _sb()
        if client is None:
            st.caption("Sign-in unavailable (missing SUPABASE_URL / SUPABASE_ANON_KEY).")
            return

        email = st.text_input("Email", placeholder="you@company.com").strip()
        otp_code = st.text_input("OTP code", placeholder="123456", max_chars=12).strip()
        col1, col2 = st.columns(2)

        if col1.button("Send code"):
            if not email:
                st.error("Enter your email first.")
            else:
                try:
                    client.auth.sign_in_with_otp({"email": email})
                    st.success("Code sent. Check your email.")
                except Exception as e:
                    logger.warning("OTP send failed for %s: %s", email, e)
                    st.error(f"Failed to send code: {e}")

        if col2.button("Verify code"):
            if not email or not otp_code.isdigit():
                st.error("Enter your email and the numeric code.")
                return
            try:
                resp = client.auth.verify_otp({"email": email, "token": otp_code, "type": "email"})
            except Exception as e:
                logger.warning("OTP verify failed for %s: %s", email, e)
                st.error(f"Verify failed: {e}")
                return

            session = getattr(resp, "session", None)
            if session is None and isinstance(resp, dict):
                session = resp.get("session")
            token = session.get("access_token") if isinstance(session, dict) else getattr(session, "access_token", None)
            if not token:
                st.error("Verify succeeded but no access token was returned.")
                return

            st.session_state.auth = {"access_token": token, "email": email}
            st.rerun()


# ----------------------------
# Page
# ----------------------------
st.set_page_config(page_title="Delivery Cost Calculator", layout="centered")
st.title("Delivery Cost Calculator")

_render_auth_sidebar()

configs = api_client.fetch_configurations(active_only=True) or [cc.get_default_configuration()]
labels = {c.id: c.client_name for c in configs}
config_id = st.selectbox("Client", options=list(labels), format_func=labels.get)
config = api_client.fetch_configuration(config_id)
if config.description:
    st.caption(config.description)

c1, c2 = st.columns(2)
headcount = c1.number_input("Headcount", min_value=0, value=0, step=1)
food_cost = c2.number_input("Food Cost ($)", min_value=0.0, value=0.0, step=10.0)
mileage = c1.number_input("Total Mileage", min_value=0.0, value=0.0, step=0.5)
number_of_stops = c2.number_input("Number of Stops", min_value=1, value=1, step=1)
number_of_drives = c1.number_input("Drives Today (same driver)", min_value=1, value=1, step=1)
delivery_area = c2.text_input("Delivery Area", placeholder="e.g. San Francisco")

requires_bridge = st.checkbox(
    "Bridge Crossing",
    value=False,
    help=f"Default toll ${config.bridge_toll_settings.default_toll_amount:,.2f}",
)

with st.expander("Driver extras"):
    d1, d2 = st.columns(2)
    tips = d1.number_input("Tips ($)", min_value=0.0, value=0.0, step=1.0)
    adjustments = d2.number_input("Adjustments ($)", value=0.0, step=1.0)
    bonus_qualified = d1.checkbox("Bonus Qualified", value=False)
    bonus_percent = d2.slider("Bonus Qualified %", min_value=0, max_value=100, value=100, disabled=not bonus_qualified)

inputs = CalculationInput(
    headcount=int(headcount),
    food_cost=float(food_cost),
    mileage=float(mileage),
    requires_bridge=bool(requires_bridge),
    number_of_stops=int(number_of_stops),
    number_of_drives=int(number_of_drives),
    tips=float(tips),
    adjustments=float(adjustments),
    delivery_area=delivery_area or None,
)
driver_options = {"bonus_qualified": bool(bonus_qualified), "bonus_qualified_percent": float(bonus_percent)}

st.divider()
st.subheader("Summary")

errors = validate_calculation_input(inputs)
if errors:
    for msg in errors.values():
        st.error(msg)
    st.stop()

try:
    result = calculate(inputs, config, **driver_options)
except ValueError as e:
    st.warning(str(e))
    st.stop()

customer = result["customerCharges"]
driver = result["driverPayments"]

m1, m2, m3 = st.columns(3)
m1.metric("Customer Total", f"${customer['total']:,.2f}")
m2.metric("Driver Total", f"${driver['total']:,.2f}")
m3.metric("Profit", f"${result['profit']:,.2f}", f"{result['profitMargin']:.1f}%")

b1, b2 = st.columns(2)
with b1:
    st.caption("Customer charges")
    st.write(f"Base fee: ${customer['baseFee']:,.2f}")
    st.write(f"Long distance: ${customer['longDistanceCharge']:,.2f}")
    st.write(f"Bridge toll: ${customer['bridgeToll']:,.2f}")
    st.write(f"Extra stops: ${customer['extraStopsCharge']:,.2f}")
    if customer["dailyDriveDiscount"]:
        st.write(f"Daily drive discount: -${customer['dailyDriveDiscount']:,.2f}")
with b2:
    st.caption("Driver payments")
    st.write(f"Base pay: ${driver['basePay']:,.2f}")
    st.write(f"Mileage pay: ${driver['mileagePay']:,.2f}")
    st.write(f"Extra stops bonus: ${driver['extraStopsBonus']:,.2f}")
    st.write(f"Bonus: ${driver['bonusPay']:,.2f}")
    st.write(f"Bridge toll: ${driver['bridgeToll']:,.2f}")
    if driver["capApplied"]:
        st.info(f"Capped at ${config.driver_pay_settings.max_pay_per_drop:,.2f} per drop")

with st.expander("Pricing tiers"):
    tiers = pd.DataFrame([cc.tier_to_dict(t) for t in config.pricing_tiers])
    st.dataframe(tiers, hide_index=True, use_container_width=True)

st.divider()
notes = st.text_input("Notes", placeholder="Optional")
if st.button("Save to History", disabled=not _access_token()):
    try:
        saved = api_client.save_calculation(inputs, config.id, _access_token(), notes=notes or None, **driver_options)
        st.success(f"Saved calculation {saved.get('id')}")
    except api_client.ApiError as e:
        st.error(str(e))
if not _access_token():
    st.caption("Log in in the sidebar to save calculations.")
