"""Streamlit UI for chatting with Gemini."""
from __future__ import annotations

import streamlit as st

from gemini_chat.config import configure_logging
from gemini_chat.session import GeminiSession, create_session


def _rerun() -> None:
    """Trigger a Streamlit rerun compatible with newer and older versions."""
    if hasattr(st, "rerun"):
        st.rerun()
    else:  # pragma: no cover - support for older Streamlit releases
        st.experimental_rerun()


st.set_page_config(page_title="Gemini Chat", page_icon="💬", layout="wide")
configure_logging()


def get_session() -> GeminiSession:
    if "session" not in st.session_state:
        st.session_state.session = create_session()
    if "last_failed" not in st.session_state:
        st.session_state.last_failed = False
    return st.session_state.session


def _handle_response(response: str | None) -> None:
    st.session_state.last_failed = not response


def render_sidebar(session: GeminiSession) -> None:
    with st.sidebar:
        st.header("Session Controls")
        if st.button("Clear history", use_container_width=True):
            session.clear_history()
            st.session_state.last_failed = False
            _rerun()
        st.divider()
        st.subheader("Personality")
        history = session.history
        current = history[0].text if history else session.personality
        with st.form("personality_form", clear_on_submit=False):
            personality = st.text_area(
                "Personality directive",
                value=current,
                help=(
                    "Seeds the first turn of a new conversation. Once the conversation has started, "
                    "saving rewrites that first turn in place."
                ),
                height=120,
            )
            submitted = st.form_submit_button("Apply", use_container_width=True)
        if submitted:
            if personality.strip():
                session.set_personality(personality.strip())
                _rerun()
            else:
                st.warning("Enter a personality before applying it.")
        st.caption(f"{len(history)} turns in history")


def render_conversation(session: GeminiSession) -> None:
    history = session.history
    for index, turn in enumerate(history):
        if index == 0 and turn.role == "model":
            st.caption(f"Personality: {turn.text}")
            continue
        with st.chat_message("assistant" if turn.role == "model" else "user"):
            st.markdown(turn.text)
    if st.session_state.last_failed:
        st.error("Gemini API call failed or returned no response.")


def main() -> None:
    session = get_session()
    render_sidebar(session)
    st.title("Gemini Chat")
    st.caption("Every prompt is sent with the full conversation so far as context.")

    render_conversation(session)

    if prompt := st.chat_input("Tell me a one line joke."):
        with st.spinner("Waiting for Gemini..."):
            session.send_prompt(prompt, _handle_response)
        _rerun()


if __name__ == "__main__":
    main()
