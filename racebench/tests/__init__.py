"""racebench test suite

Covers:
- Run configuration and deterministic port derivation
- Statistics engine (median convention, population variance, tails)
- Race runner joins, mismatch / transport / timeout failures
- Orchestrator server and client modes
- Real RPyC, HTTP and WebSocket echo round trips
- Reporting, CSV export, graphs and the command line

Run tests with:
    pytest racebench/tests/
    pytest racebench/tests/ -v  # verbose
"""
