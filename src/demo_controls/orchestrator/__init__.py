"""Demo orchestration components.

- Settings loaded from .env
- Structured logging
- Identity lookup, GitHub and Linear gateways, text mutations
- The create/reset pipelines
"""
