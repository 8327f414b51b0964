import streamlit as st
import tempfile
import threading
from pathlib import Path
import time
import sys
import os
import pandas as pd
from queue import Queue

# Add trusteeweb package to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from trusteeweb.gui_integration.bridge import run_web_worker

# Page config
st.set_page_config(
    page_title="trusteeweb",
    page_icon="📬",
    layout="wide",
    initial_sidebar_state="collapsed"
)

# Custom CSS for styling
st.markdown("""
<style>
    .stApp {
        background-color: #1f2937;
    }
    .main-header {
        font-size: 3rem;
        font-weight: bold;
        margin-bottom: 0.5rem;
        color: white;
    }
    .subtitle {
        color: #9ca3af;
        margin-bottom: 2rem;
    }
    .terminal-output {
        background-color: #000000;
        color: #e5e7eb;
        padding: 1rem;
        border-radius: 0.5rem;
        font-family: monospace;
        font-size: 0.875rem;
        height: 400px;
        overflow-y: auto;
    }
    .success-line {
        color: #4ade80;
    }
    .warning-line {
        color: #facc15;
    }
    .info-line {
        color: #60a5fa;
    }
</style>
""", unsafe_allow_html=True)

# Initialize session state
if 'terminal_output' not in st.session_state:
    st.session_state.terminal_output = []
if 'is_running' not in st.session_state:
    st.session_state.is_running = False
if 'web_result' not in st.session_state:
    st.session_state.web_result = None
if 'output_queue' not in st.session_state:
    st.session_state.output_queue = Queue()
if 'cancel_event' not in st.session_state:
    st.session_state.cancel_event = threading.Event()
if 'web_error' not in st.session_state:
    st.session_state.web_error = None

# Header
st.markdown('<div class="main-header">trusteeweb</div>', unsafe_allow_html=True)
st.markdown('<div class="subtitle">Mailbox Trustee Web Builder</div>', unsafe_allow_html=True)

tab1, tab2, tab3, tab4 = st.tabs(["Configuration", "Terminal Output", "Web", "Nodes"])

# Configuration Tab
with tab1:
    st.markdown("### Permission Data")
    uploaded_files = st.file_uploader(
        "Permission export CSV files",
        type=["csv"],
        accept_multiple_files=True,
        help="Exports with MailboxIdentity, TrusteeIdentity and PermissionType columns"
    )
    sql_database = st.text_input(
        "SQLite database (used when no CSV is uploaded)",
        value=st.session_state.get('sql_database', ''),
        placeholder="perms.db"
    )

    st.markdown("### Seeds")
    seeds_text = st.text_area(
        "Seed identities",
        value=st.session_state.get('seeds_text', ''),
        placeholder="ceo@contoso.com\ncfo@contoso.com",
        help="One per line, or separated by commas or semicolons"
    )

    st.markdown("### Web Options")
    col1, col2, col3 = st.columns(3)
    with col1:
        max_depth = st.number_input("Maximum depth", min_value=1, value=100, step=1)
    with col2:
        mailbox_threshold = st.number_input("Permissive mailbox threshold", min_value=1, value=500, step=1)
    with col3:
        trustee_threshold = st.number_input("Power trustee threshold", min_value=1, value=500, step=1)

    col_opt1, col_opt2 = st.columns(2)
    with col_opt1:
        ignore_types = st.multiselect(
            "Ignore permission types",
            ["FullAccess", "SendAs", "SendOnBehalf", "MailboxRoot", "Inbox",
             "Calendar", "Contacts", "Tasks", "SentItems"],
        )
    with col_opt2:
        clean_output = st.checkbox("Clean Previous Output", value=True,
                                   help="Remove previous results before running")

    col_btn1, col_btn2, col_btn3 = st.columns([1, 1, 4])

    with col_btn1:
        can_start = bool(seeds_text.strip()) and bool(uploaded_files or sql_database)
        start_button = st.button("Build Web", type="primary",
                                 disabled=st.session_state.is_running or not can_start,
                                 use_container_width=True)

    with col_btn2:
        if st.session_state.is_running:
            if st.button("Stop", type="secondary", use_container_width=True):
                st.session_state.cancel_event.set()
                st.session_state.terminal_output.append("[!] Cancellation requested by user")
                st.rerun()

    if start_button:
        st.session_state.is_running = True
        st.session_state.terminal_output = ["[+] Initializing trusteeweb..."]
        st.session_state.web_result = None
        st.session_state.web_error = None
        st.session_state.cancel_event = threading.Event()
        st.session_state['seeds_text'] = seeds_text
        st.session_state['sql_database'] = sql_database

        # Uploaded files only live in memory; the loaders read from disk
        upload_dir = Path(tempfile.mkdtemp(prefix="trusteeweb_"))
        input_files = []
        for uploaded in uploaded_files or []:
            file_path = upload_dir / uploaded.name
            file_path.write_bytes(uploaded.getvalue())
            input_files.append(str(file_path))

        web_params = {
            'seeds': [seeds_text],
            'input_files': input_files or None,
            'sql_database': sql_database or None,
            'output_dir': "output",
            'clean_output': clean_output,
            'config': {
                "traversal": {"maximum_depth": int(max_depth)},
                "thresholds": {
                    "permissive_mailbox_threshold": int(mailbox_threshold),
                    "power_trustee_threshold": int(trustee_threshold),
                },
                "ignore": {"permission_types": list(ignore_types)},
            },
        }

        # Get queue and event references before thread starts (thread-safe)
        output_queue = st.session_state.output_queue
        cancel_event = st.session_state.cancel_event

        thread = threading.Thread(
            target=run_web_worker,
            args=(output_queue, web_params, cancel_event, str(upload_dir)),
            daemon=True,
        )
        thread.start()
        st.session_state['web_thread'] = thread
        st.rerun()

# Terminal Output Tab
with tab2:
    st.markdown("### Terminal Output")

    if st.session_state.is_running:
        st.info("🔄 Building web...")

        output_queue = st.session_state.output_queue
        while not output_queue.empty():
            msg_type, message = output_queue.get_nowait()
            if msg_type == "complete":
                st.session_state.is_running = False
            elif msg_type == "log":
                st.session_state.terminal_output.append(message)
            elif msg_type == "result":
                st.session_state.web_result = message
            elif msg_type == "error":
                st.session_state.web_error = message

    terminal_html = '<div class="terminal-output">'
    if not st.session_state.terminal_output:
        terminal_html += '<span style="color: #6b7280;">Waiting for execution...</span>'
    else:
        for line in st.session_state.terminal_output:
            if line.startswith('[+]'):
                terminal_html += f'<div class="success-line">{line}</div>'
            elif line.startswith('[!]'):
                terminal_html += f'<div class="warning-line">{line}</div>'
            elif line.startswith('[*]'):
                terminal_html += f'<div class="info-line">{line}</div>'
            else:
                terminal_html += f'<div>{line}</div>'
    terminal_html += '</div>'

    st.markdown(terminal_html, unsafe_allow_html=True)

    if st.session_state.get('web_error'):
        st.error(f"Web build error: {st.session_state.web_error}")

    # Auto-refresh while running
    if st.session_state.is_running:
        time.sleep(0.5)
        st.rerun()

# Web Tab
with tab3:
    st.markdown("### Trustee Web")

    result = st.session_state.web_result
    if result:
        summary = result.summary
        col1, col2, col3, col4 = st.columns(4)
        with col1:
            st.metric("Seeds", summary.seed_count)
        with col2:
            st.metric("Nodes", summary.node_count)
        with col3:
            st.metric("Depth Reached", summary.depth_reached)
        with col4:
            excluded = 0
            if result.exclusions:
                excluded = len(result.exclusions.permissive_mailboxes) + len(result.exclusions.power_trustees)
            st.metric("Excluded Identities", excluded)

        html_path = result.report_paths.get("html")
        if html_path and Path(html_path).exists():
            with open(html_path, 'r', encoding='utf-8') as f:
                html_content = f.read()
            st.components.v1.html(html_content, height=750, scrolling=True)
        else:
            st.info("No interactive web was rendered for this run")
    else:
        st.info("Build a web to see it here")

# Nodes Tab
with tab4:
    st.markdown("### Web Nodes")

    result = st.session_state.web_result
    if result:
        nodes_csv = result.report_paths.get("nodes_csv")
        if nodes_csv and Path(nodes_csv).exists():
            nodes_df = pd.read_csv(nodes_csv)
        else:
            nodes_df = pd.DataFrame([node.to_dict() for node in result.nodes])

        depth_filter = st.slider("Show nodes up to depth", 0, max(result.summary.depth_reached, 1),
                                 result.summary.depth_reached)
        st.dataframe(nodes_df[nodes_df["Depth"] <= depth_filter], use_container_width=True)

        if nodes_csv and Path(nodes_csv).exists():
            with open(nodes_csv, 'rb') as f:
                st.download_button("Download web_nodes.csv", f.read(),
                                   file_name="web_nodes.csv", mime="text/csv")

        edges_csv = result.report_paths.get("edges_csv")
        if edges_csv and Path(edges_csv).exists():
            st.markdown("### Web Relationships")
            st.dataframe(pd.read_csv(edges_csv), use_container_width=True)
    else:
        st.info("Build a web to see its nodes here")
