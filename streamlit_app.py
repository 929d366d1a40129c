"""Personal Assistant - Streamlit App with Chat UI."""

import os
import asyncio
import threading
import streamlit as st
from config.settings import Settings
from errors import ConfigurationError
from assistant import Assistant


st.set_page_config(
    page_title="Personal Assistant",
    page_icon="🪐",
    layout="wide"
)


@st.cache_resource
def get_event_loop() -> asyncio.AbstractEventLoop:
    """One long-lived event loop shared by all reruns, run in a background thread."""
    loop = asyncio.new_event_loop()
    threading.Thread(target=loop.run_forever, daemon=True).start()
    return loop


def run_async(coro):
    """Run a coroutine on the shared loop and wait for its result."""
    return asyncio.run_coroutine_threadsafe(coro, get_event_loop()).result()


@st.cache_resource
def get_assistant(provider: str, api_key: str, db_path: str, max_iterations: int) -> Assistant:
    """Get or create the assistant for this configuration."""
    settings = Settings(
        llm_provider=provider,
        anthropic_api_key=api_key if provider == "anthropic" else None,
        openai_api_key=api_key if provider == "openai" else None,
        db_path=db_path,
        max_agent_iterations=max_iterations,
    )
    if not settings.allowed_user_ids:
        settings.allowed_user_ids = [0]
    settings.validate_required()
    return Assistant(settings=settings)


# Initialize session state
if "messages" not in st.session_state:
    st.session_state.messages = []


# Sidebar configuration
st.sidebar.header("Configuration")

llm_provider = st.sidebar.selectbox(
    "LLM Provider",
    options=["anthropic", "openai"],
    index=0,
    help="Select which LLM to use"
)

default_key_env = "ANTHROPIC_API_KEY" if llm_provider == "anthropic" else "OPENAI_API_KEY"
api_key = st.sidebar.text_input(
    "API Key",
    value=os.environ.get(default_key_env, ""),
    type="password",
    help=f"Falls back to {default_key_env}"
)

with st.sidebar.expander("Advanced Settings"):
    db_path = st.text_input("Database Path", value="data/assistant.db")
    max_iterations = st.slider("Max Agent Iterations", min_value=1, max_value=20, value=10)

try:
    assistant = get_assistant(llm_provider, api_key, db_path, max_iterations)
except ConfigurationError as e:
    st.error(f"Configuration error: {e}")
    st.stop()

user_id = assistant.settings.allowed_user_ids[0]

if st.sidebar.button("Compact History", type="secondary"):
    with st.spinner("Summarizing conversation..."):
        status = run_async(assistant.compact(user_id))
    st.sidebar.info(status)

if st.sidebar.button("Clear Chat View", type="secondary"):
    st.session_state.messages = []
    st.rerun()

st.sidebar.markdown("---")
st.sidebar.caption(f"User ID: {user_id}")
st.sidebar.caption(f"Tools: {len(assistant.registry)}")

# Main content
st.title("Personal Assistant")

for message in st.session_state.messages:
    with st.chat_message(message["role"]):
        st.markdown(message["content"])

if prompt := st.chat_input("Message your assistant..."):
    st.session_state.messages.append({"role": "user", "content": prompt})

    with st.chat_message("user"):
        st.markdown(prompt)

    with st.chat_message("assistant"):
        with st.spinner("Thinking..."):
            chunks = run_async(assistant.handle_message(user_id, prompt))
        response = "\n\n".join(chunks)
        st.markdown(response)
        st.session_state.messages.append({"role": "assistant", "content": response})

if not st.session_state.messages:
    st.markdown("""
    ### Welcome!

    I'm your personal assistant. I remember what you tell me and can use tools.

    **Try asking:**
    - "What time is it in Tokyo?"
    - "Remember that I prefer short answers."
    - "What do you know about me?"
    """)
