"""HashPass -- Streamlit web interface."""

import streamlit as st

from hashpass import (
    MAX_LENGTH,
    MIN_LENGTH,
    Configuration,
    DerivationInput,
    DigestUnavailable,
    derive,
    validate_input,
)
from hashpass.settings import SettingsStore

# ── Lucide icons (from lucide.dev) ────────────────────────────────────────

_LUCIDE = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="{s}" height="{s}" '
    'viewBox="0 0 24 24" fill="none" stroke="currentColor" stroke-width="2" '
    'stroke-linecap="round" stroke-linejoin="round">{paths}</svg>'
)

ICON_KEY_ROUND = _LUCIDE.format(s=32, paths=(
    '<path d="M2.586 17.414A2 2 0 0 0 2 18.828V21a1 1 0 0 0 1 1h3'
    'a1 1 0 0 0 1-1v-1a1 1 0 0 1 1-1h1a1 1 0 0 0 1-1v-1'
    'a1 1 0 0 1 1-1h.172a2 2 0 0 0 1.414-.586l.814-.814'
    'a6.5 6.5 0 1 0-4-4z"/>'
    '<circle cx="16.5" cy="7.5" r=".5" fill="currentColor"/>'
))

# ── Page config ───────────────────────────────────────────────────────────

st.set_page_config(
    page_title="HashPass",
    page_icon="\U0001f511",
    layout="centered",
)

store = SettingsStore()


def _show(config: Configuration) -> None:
    st.session_state.saved = config
    for key, value in config.as_dict().items():
        st.session_state[f"opt_{key}"] = value


def _reset() -> None:
    _show(store.reset())


if "saved" not in st.session_state:
    _show(store.load())


# ── Header ────────────────────────────────────────────────────────────────

st.markdown(
    f'<h1 style="display:flex;align-items:center;gap:10px">'
    f'{ICON_KEY_ROUND} HashPass</h1>',
    unsafe_allow_html=True,
)
st.caption(
    "The same inputs always give the same password.  \n"
    "Nothing is stored or sent anywhere - only your settings are remembered."
)

# ── Input fields ──────────────────────────────────────────────────────────

site = st.text_input("Website", placeholder="e.g. example")
username = st.text_input("Username (optional)")
secret = st.text_input("Master password", type="password")
phrase = st.text_input("Phrase (optional)")

data = DerivationInput(site=site, username=username, secret=secret, phrase=phrase)
result = validate_input(data)

# Only complain about fields the user has touched
for name, value in (("site", site), ("username", username),
                    ("secret", secret), ("phrase", phrase)):
    if value and not result.field_valid(name):
        st.error(result.errors[name].message)

# ── Settings ──────────────────────────────────────────────────────────────

col1, col2 = st.columns(2)
with col1:
    length = st.slider("Length", MIN_LENGTH, MAX_LENGTH, key="opt_length")
    st.button("Reset settings", on_click=_reset)
with col2:
    uppercase = st.checkbox("Uppercase", key="opt_uppercase")
    lowercase = st.checkbox("Lowercase", key="opt_lowercase")
    numbers = st.checkbox("Numbers", key="opt_numbers")
    symbols = st.checkbox("Symbols", key="opt_symbols")

config = Configuration(uppercase, lowercase, numbers, symbols, length)
if config != st.session_state.saved:
    store.save(config)
    st.session_state.saved = config

# ── Password ──────────────────────────────────────────────────────────────

if not any((uppercase, lowercase, numbers, symbols)):
    st.warning("Select at least one character type.", icon="⚠️")
elif result.is_valid:
    try:
        password = derive(data, config)
    except DigestUnavailable:
        st.error("Error generating password")
    else:
        # st.code renders its own copy-to-clipboard button
        st.code(password, language=None)
