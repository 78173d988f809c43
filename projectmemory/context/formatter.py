"""Render a ProjectContext as prompt text.

Output is a pure function of the context: the same context always renders to
the same string, so it can be asserted on exactly and cached by callers.
"""

from __future__ import annotations

from projectmemory.extraction.models import ProjectContext

MAX_FAILED_APPROACHES = 5


def format_context_for_prompt(context: ProjectContext) -> str:
    stack = context.stack
    lines: list[str] = [
        "## PROJECT CONTEXT",
        f"**Project:** {context.project_name} ({context.project_type})",
        f"**Version:** {context.version}",
        f"**Phase:** {context.current_phase}",
        "### Tech Stack",
        f"- Framework: {stack.framework}",
        f"- Database: {stack.database}",
        f"- ORM: {stack.orm}",
        f"- Auth: {stack.auth}",
        f"- UI: {stack.ui}",
    ]
    if stack.payments:
        lines.append(f"- Payments: {stack.payments}")

    critical = [d for d in context.decisions if d.impact in ("critical", "high")]
    if critical:
        lines.append("### CRITICAL DECISIONS (Must follow)")
        lines.extend(f"- **{d.decision}**: {d.reasoning}" for d in critical)

    failed = [a for a in context.recent_attempts if a.result == "failure" and a.should_not_retry]
    if failed:
        lines.append("### FAILED APPROACHES (Do not retry)")
        lines.extend(
            f"- {a.approach}: {a.error_message or 'Failed'}"
            for a in failed[:MAX_FAILED_APPROACHES]
        )

    if context.blockers:
        lines.append("### ACTIVE BLOCKERS")
        lines.extend(f"- {b.description}" for b in context.blockers)

    if context.built_features:
        lines.append("### Built Features")
        lines.extend(f"- {feature}" for feature in context.built_features)

    return "\n".join(lines)
