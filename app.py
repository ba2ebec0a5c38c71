"""
Partition Allocation Visualizer: First-Fit, Best-Fit & Worst-Fit

This application simulates contiguous memory allocation over a fixed-size
pool and visualizes how the three classic placement strategies behave:
    - Block splitting with a minimum useful remainder (split threshold)
    - Coalescing of adjacent free blocks after a process terminates
    - External fragmentation and memory utilization per strategy

Built with Streamlit for the web interface and Plotly for visualizations.
Run with:  streamlit run app.py
"""

# =============================================================================
# IMPORTS
# =============================================================================

import io                                    # Wrap uploaded workload text
import streamlit as st                       # Web application framework
import plotly.graph_objects as go            # Interactive plotting library

from engine import FitStrategy, ProcessStatus
from loader import WorkloadError, parse_workload
from simulation import SimulationPlan, SimulationSession, compare_strategies
from utils import block_rows, get_color, process_rows, summary_rows


DEFAULT_WORKLOAD = """100
# id size [arrival_time] [duration]
1 30
2 20
3 15
4 25
5 10
"""


# =============================================================================
# PLOTTING HELPERS
# =============================================================================

def block_map_figure(blocks, capacity: int, title: str = "Memory Map") -> go.Figure:
    """
    Draw the block table as one horizontal stacked bar spanning the pool.

    Args:
        blocks: MemoryBlock objects in address order
        capacity (int): Pool size, used as the x-axis range
        title (str): Figure title

    Returns:
        go.Figure: One bar segment per block, labelled with owner and size
    """
    fig = go.Figure()
    for b in blocks:
        label = "Free" if b.free else f"P{b.owner_id}"
        fig.add_trace(go.Bar(
            x=[b.size],
            y=["Pool"],
            orientation="h",
            marker_color=get_color(b.free, b.owner_id),
            marker_line=dict(color="black", width=1),
            text=f"{label} ({b.size})",
            hovertext=f"{label}: start={b.start}, size={b.size}",
            hoverinfo="text",
        ))

    fig.update_layout(
        barmode="stack",
        height=160,
        showlegend=False,
        title=title,
        xaxis=dict(range=[0, capacity], title="Address"),
        yaxis=dict(showticklabels=False),
        margin=dict(l=10, r=10, t=40, b=30),
    )
    return fig


def read_workload(text: str):
    """Parse workload text, reporting problems in the sidebar instead of raising."""
    try:
        return parse_workload(io.StringIO(text))
    except WorkloadError as e:
        st.sidebar.error(str(e))
        return None


# Configure the Streamlit page
st.set_page_config(page_title="Partition Allocation Visualizer", layout="wide")

# -----------------------------------------------------------------------------
# SIDEBAR NAVIGATION
# -----------------------------------------------------------------------------

page = st.sidebar.radio("Choose View", ["Step-by-step", "Compare Strategies", "Concepts"])

st.title("Partition Allocation Visualizer: First-Fit, Best-Fit & Worst-Fit")

# =============================================================================
# CONCEPTS PAGE - Educational Content
# =============================================================================

if page == "Concepts":
    st.header("Operating System Concepts Used in This Project")
    st.markdown(
        """
        ### **1. Contiguous Allocation**
        - Each process receives one unbroken region of the memory pool.
        - The pool is tracked as an ordered list of blocks, each free or owned by one process.

        ### **2. Placement Strategies**
        - **First-Fit**: the lowest-addressed free block that is large enough.
        - **Best-Fit**: the free block leaving the smallest leftover.
        - **Worst-Fit**: the free block leaving the largest leftover.
        - Ties go to the lowest address.

        ### **3. Splitting**
        - When the leftover exceeds the *split threshold*, the block is split into an allocated head and a free tail.
        - Smaller leftovers stay inside the allocation (internal fragmentation) so no useless slivers appear.

        ### **4. Coalescing**
        - When a process terminates, adjacent free blocks are merged until no two neighbours are free.

        ### **5. External Fragmentation**
        - Free memory exists in total but not contiguously.
        - Measured here as the share of free memory outside the largest free block.
        """
    )
    st.stop()

# -----------------------------------------------------------------------------
# SIDEBAR - Allocator Settings
# -----------------------------------------------------------------------------

st.sidebar.header("Allocator Settings")

workload_text = st.sidebar.text_area(
    "Workload (first line: capacity, then `id size` per line)",
    value=DEFAULT_WORKLOAD,
    height=180,
)

uploaded = st.sidebar.file_uploader("...or upload a workload file", type=["txt"])
if uploaded is not None:
    workload_text = uploaded.getvalue().decode("utf-8")

split_threshold = st.sidebar.number_input("Split threshold", min_value=0, value=10, step=1)
max_blocks = st.sidebar.number_input("Max blocks", min_value=1, max_value=1000, value=100, step=1)

workload = read_workload(workload_text)
if workload is None:
    st.stop()

st.sidebar.markdown("---")

# =============================================================================
# STEP-BY-STEP PAGE - Drive a single strategy by hand
# =============================================================================

if page == "Step-by-step":
    strategy = st.sidebar.selectbox("Strategy", options=list(FitStrategy.ALL))

    # Rebuild the session whenever any input that shapes it changes
    key = (strategy, workload_text, split_threshold, max_blocks)
    reset = st.sidebar.button("Reset Simulation")
    if reset or st.session_state.get("session_key") != key:
        st.session_state.session = SimulationSession(
            strategy, workload.capacity, workload.requests(),
            split_threshold=int(split_threshold), max_blocks=int(max_blocks),
        )
        st.session_state.session_key = key

    session: SimulationSession = st.session_state.session

    col1, col2 = st.columns([1, 2])

    # -------------------------------------------------------------------------
    # LEFT COLUMN - Controls and Event Log
    # -------------------------------------------------------------------------
    with col1:
        st.subheader("Controls")

        # Outcomes of the last click survive the rerun that refreshes the widgets
        for ok, text in st.session_state.pop("flash", []):
            (st.success if ok else st.error)(text)

        pending = session.with_status(ProcessStatus.NEW)
        if pending:
            count = st.number_input("Processes to allocate", min_value=1, max_value=len(pending), value=1)
            if st.button("Allocate next"):
                st.session_state.flash = [
                    (True, f"P{r.request_id} placed at {r.block.start}") if r.success
                    else (False, f"P{r.request_id} failed: {r.error}")
                    for r in session.allocate_next(int(count))
                ]
                session.sample_utilization()
                st.rerun()
        else:
            st.write("No unallocated processes left")

        running = [r.id for r in session.with_status(ProcessStatus.ACTIVE)]
        to_stop = st.multiselect("Processes to terminate", options=running)
        if st.button("Terminate selected") and to_stop:
            session.terminate(to_stop)
            session.sample_utilization()
            st.rerun()

        pct = st.slider("Large request (% of free memory)", min_value=1, max_value=100, value=50)
        if st.button("Allocate large process"):
            try:
                result = session.allocate_large(float(pct))
            except ValueError as e:
                st.error(str(e))
            else:
                if result.success:
                    st.session_state.flash = [(True, f"P{result.request_id} ({result.requested_size}) placed at {result.block.start}")]
                else:
                    st.session_state.flash = [(False, f"Large allocation of {result.requested_size} failed: {result.error}")]
                session.sample_utilization()
                st.rerun()

        st.subheader("Event Log")
        for ev in session.event_log[-20:][::-1]:
            st.write(ev)

    # -------------------------------------------------------------------------
    # RIGHT COLUMN - Visualizations
    # -------------------------------------------------------------------------
    with col2:
        st.plotly_chart(
            block_map_figure(session.engine.get_state(), workload.capacity, title=f"{strategy} Memory Map"),
            use_container_width=True,
        )

        st.subheader("Block List")
        st.table(block_rows(session.engine.get_state()))

        st.subheader("Processes")
        st.table(process_rows(session.requests, session.engine))

        stats = session.stats()
        m1, m2, m3, m4 = st.columns(4)
        m1.metric("Success Rate", f"{stats.success_rate:.1f}%")
        m2.metric("Fragmentation", f"{stats.fragmentation_percent:.1f}%")
        m3.metric("Free Blocks", stats.free_block_count)
        m4.metric("Utilization", f"{session.engine.utilization() * 100:.1f}%")

# =============================================================================
# COMPARISON PAGE - Same plan under all three strategies
# =============================================================================

else:
    ids = [p.id for p in workload.processes]

    st.sidebar.header("Simulation Plan")
    initial = st.sidebar.number_input("Phase 1: processes to allocate", min_value=1, max_value=len(ids), value=len(ids))
    terminate_all = st.sidebar.checkbox("Phase 2: terminate all running")
    terminate_ids = st.sidebar.multiselect("Phase 2: processes to terminate", options=ids, disabled=terminate_all)
    more = st.sidebar.number_input("Phase 3: more processes to allocate", min_value=0, max_value=len(ids), value=0)
    large = st.sidebar.slider("Phase 4: large request (% of free memory)", min_value=1, max_value=100, value=50)

    plan = SimulationPlan(
        initial_allocations=int(initial),
        terminate_ids=terminate_ids,
        terminate_all=terminate_all,
        additional_allocations=int(more),
        large_percent=float(large),
    )

    sessions = compare_strategies(
        workload.capacity, workload.requests(), plan,
        split_threshold=int(split_threshold), max_blocks=int(max_blocks),
    )

    summaries = [s.summary() for s in sessions.values()]

    st.subheader("Summary of Allocation Methods")
    st.table(summary_rows(summaries))

    # ----- Success rate vs fragmentation per strategy -----
    fig = go.Figure()
    fig.add_trace(go.Bar(
        name="Success rate (%)",
        x=[s.strategy for s in summaries],
        y=[s.success_rate for s in summaries],
    ))
    fig.add_trace(go.Bar(
        name="Fragmentation (%)",
        x=[s.strategy for s in summaries],
        y=[s.fragmentation_percent for s in summaries],
    ))
    fig.update_layout(barmode="group", height=320, title="Strategy Comparison")
    st.plotly_chart(fig, use_container_width=True)

    # ----- Final memory map per strategy -----
    for tab, (strategy, s) in zip(st.tabs(list(sessions)), sessions.items()):
        with tab:
            st.plotly_chart(
                block_map_figure(s.engine.get_state(), workload.capacity, title=f"{strategy} Final Memory Map"),
                use_container_width=True,
            )
            st.table(block_rows(s.engine.get_state()))
            with st.expander("Event Log"):
                for ev in s.event_log:
                    st.write(ev)

# =============================================================================
# FOOTER - Usage Tips
# =============================================================================

st.markdown("---")
st.markdown(
    "**Usage tips**:\n"
    "- Edit or upload a workload: the first line is the pool size, then one `id size` pair per line.\n"
    "- Use **Step-by-step** to allocate and terminate processes by hand under one strategy.\n"
    "- Use **Compare Strategies** to run the same four-phase plan under all three strategies.\n"
    "- Raise the split threshold to trade slivers for internal fragmentation."
)
