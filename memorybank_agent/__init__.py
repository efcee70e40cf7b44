"""Memory Bank agent core.

This package turns a natural-language coding request into a planned,
executed and summarized interaction.

Core subpackages
----------------

- ``memorybank_agent.core``: settings (pydantic-settings) and logging
  configuration.
- ``memorybank_agent.agent_core``:

  - the planner and its model service abstraction,
  - the tool protocol, registry and minimal built-in tools,
  - a LangGraph-based execution engine with single-retry recovery,
  - the token-budgeted context store with automatic snapshots,
  - reflection and the event log (in-memory and SQL).

Typical workflow
----------------

1. Build an orchestrator with ``agent_core.factory.build_orchestrator``.
2. Call ``handle_request(input, context)``.
3. Inspect the returned ``InteractionResult``.
"""
