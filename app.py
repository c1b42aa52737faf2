"""
SocialShield Streamlit UI
A demo interface for the social engineering detection API.
"""

from typing import Optional, Dict, Any, List

import requests
import streamlit as st


st.set_page_config(
    page_title="SocialShield Demo",
    page_icon="🛡️",
    layout="wide",
)

SEVERITY_ICONS = {
    "safe": "🟢",
    "low": "🔵",
    "medium": "🟡",
    "high": "🟠",
    "critical": "🔴",
}

SOURCE_TYPES = ["email", "message", "link", "other"]


# ---------- Helpers ----------


def _headers(api_key: Optional[str]) -> Optional[Dict[str, str]]:
    return {"X-API-Key": api_key} if api_key else None


def call_api(
    method: str,
    base_url: str,
    path: str,
    api_key: Optional[str],
    **kwargs,
) -> Any:
    """Call the SocialShield API and return decoded JSON."""
    endpoint = base_url.rstrip("/") + path
    resp = requests.request(method, endpoint, headers=_headers(api_key), timeout=30, **kwargs)
    resp.raise_for_status()
    return resp.json()


def render_record(record: Dict[str, Any]):
    """Render a scan result."""
    st.subheader("🔎 Result")

    severity = record.get("severity_level", "safe")
    icon = SEVERITY_ICONS.get(severity, "⚪")

    col1, col2, col3 = st.columns(3)

    with col1:
        st.metric("Severity", f"{icon} {severity.upper()}")

    with col2:
        st.metric("Confidence", f"{record.get('confidence_score', 0.0):.0f}%")

    with col3:
        st.metric("Threat Type", record.get("threat_type", "none"))

    patterns = record.get("detected_patterns") or []
    if patterns:
        st.markdown("**🚩 Detected Patterns**")
        for name in patterns:
            st.write(f"- {name}")

    st.markdown("**📝 Explanation**")
    st.text_area(
        "",
        record.get("explanation", ""),
        height=320,
        disabled=True,
        label_visibility="collapsed",
        key=f"explanation_{record.get('id')}",
    )

    with st.expander("🔧 Raw JSON response"):
        st.json(record)


def render_threat_list(records: List[Dict[str, Any]], base_url: str, api_key: Optional[str]):
    if not records:
        st.info("No scans yet.")
        return

    for record in records:
        severity = record.get("severity_level", "safe")
        icon = SEVERITY_ICONS.get(severity, "⚪")
        title = (
            f"{icon} {severity.upper()} · {record.get('threat_type')} · "
            f"{record.get('status')} · {record.get('detected_at', '')[:19]}"
        )
        with st.expander(title):
            st.write(record.get("source_content", "")[:500])
            st.caption(f"Confidence: {record.get('confidence_score', 0):.0f}%")

            col_ack, col_res, col_fp = st.columns(3)
            actions = [
                (col_ack, "✔️ Acknowledge", "acknowledge", record.get("status") == "new"),
                (col_res, "✅ Resolve", "resolve", record.get("status") in ("new", "acknowledged")),
                (col_fp, "🚫 False positive", "false-positive", record.get("status") != "false_positive"),
            ]
            for col, label, action, enabled in actions:
                with col:
                    if st.button(label, key=f"{action}_{record['id']}", disabled=not enabled):
                        try:
                            call_api("POST", base_url, f"/threats/{record['id']}/{action}", api_key)
                            st.rerun()
                        except requests.exceptions.HTTPError as e:
                            st.error(f"API Error: {e.response.status_code} - {e.response.text}")


# ---------- Sidebar config ----------


st.sidebar.title("⚙️ Settings")

base_url = st.sidebar.text_input(
    "Backend URL",
    value="http://127.0.0.1:8000",
    help="FastAPI server base URL.",
)

api_key = st.sidebar.text_input(
    "API Key (optional)",
    type="password",
    help="If the API is secured with X-API-Key, put it here.",
)

user_id = st.sidebar.text_input("User ID", value="demo-user")

st.sidebar.markdown("---")

if st.sidebar.button("🔌 Check Connection"):
    try:
        resp = requests.get(f"{base_url.rstrip('/')}/health", timeout=5)
        if resp.status_code == 200:
            st.sidebar.success("✅ Backend is online!")
        else:
            st.sidebar.error(f"❌ Backend returned {resp.status_code}")
    except requests.exceptions.RequestException as e:
        st.sidebar.error(f"❌ Cannot connect: {e}")


# ---------- Main UI ----------


st.title("🛡️ SocialShield")
st.markdown("**Social Engineering Detection Demo**")
st.markdown("---")

tabs = st.tabs(["🔍 Scan", "📋 Recent Threats", "📊 Today's Stats"])


# --- SCAN TAB ---
with tabs[0]:
    st.header("Scan a Communication")
    st.markdown("Paste an email, message, or link to check for phishing, pretexting, or baiting.")

    source_type = st.selectbox("Source type", options=SOURCE_TYPES)
    content = st.text_area(
        "Content",
        height=200,
        placeholder="Example: URGENT: verify your account now, click http://bit.ly/xyz",
    )

    if st.button("🔍 Scan", key="scan", type="primary"):
        if not content.strip():
            st.warning("Please enter some content.")
        else:
            with st.spinner("Scanning..."):
                try:
                    record = call_api(
                        "POST",
                        base_url,
                        "/scan",
                        api_key,
                        json={"user_id": user_id, "content": content, "source_type": source_type},
                    )
                    render_record(record)
                except requests.exceptions.HTTPError as e:
                    st.error(f"API Error: {e.response.status_code} - {e.response.text}")
                except requests.exceptions.RequestException as e:
                    st.error(f"Error calling backend: {e}")


# --- RECENT THREATS TAB ---
with tabs[1]:
    st.header("Recent Threats")
    try:
        records = call_api("GET", base_url, "/threats", api_key, params={"user_id": user_id})
        render_threat_list(records, base_url, api_key)
    except requests.exceptions.RequestException as e:
        st.error(f"Could not load threats: {e}")


# --- STATS TAB ---
with tabs[2]:
    st.header("Today's Stats")
    try:
        stats = call_api("GET", base_url, f"/stats/{user_id}", api_key)
        col1, col2, col3 = st.columns(3)
        col1.metric("Scanned", stats["total_scanned"])
        col2.metric("Threats", stats["threats_detected"])
        col3.metric("False Positives", stats["false_positives"])
        st.bar_chart(stats["by_severity"])
    except requests.exceptions.HTTPError as e:
        if e.response is not None and e.response.status_code == 404:
            st.info("No scans recorded today.")
        else:
            st.error(f"API Error: {e}")
    except requests.exceptions.RequestException as e:
        st.error(f"Could not load stats: {e}")


# --- Footer ---
st.markdown("---")
st.markdown(
    "<div style='text-align: center; color: gray;'>"
    "SocialShield v0.1.0 • Social Engineering Detection"
    "</div>",
    unsafe_allow_html=True,
)
