from __future__ import annotations

from typing import Iterable, List, Optional

from tools.todos import format_todo_lines


NO_TODOS_TEXT = "No tasks have been created yet for this section."

TEST_CHAT_SYSTEM_PROMPT = "You are a helpful assistant. Respond clearly to user messages."


def build_todo_block(todo_rows) -> str:
    lines = format_todo_lines(todo_rows)
    return "\n".join(lines) if lines else NO_TODOS_TEXT


def build_section_system_prompt(
    idea_title: str,
    section_title: str,
    todo_rows,
    section_description: Optional[str] = None,
    tools_enabled: bool = True,
) -> str:
    section_line = f"- Section: {section_title}"
    if section_description:
        section_line += f" ({section_description})"

    prompt = f"""You are a helpful AI assistant for software development tasks.

Project Context:
- Idea: {idea_title}
{section_line}

Current Tasks in this Section:
{build_todo_block(todo_rows)}

Help the user with questions about this section, provide guidance, discuss implementation details, and offer suggestions for completing the tasks."""

    if tools_enabled:
        prompt += """

You can manage this section's task list with tools:
- Use createTodo to add a task when the user asks for one. Create one call per task.
- Use updateTodo to rename a task or mark it completed/not completed.
- Use deleteTodo to remove a task. Task numbers the user mentions may be IDs; call getCurrentTodos when unsure.
- Use getCurrentTodos to see every task with its ID before changing tasks you have not seen.
The section is selected by the system; never ask the user which section they mean.
After using a tool, tell the user briefly what changed."""
    return prompt


def build_transcript(turns: Iterable[tuple[str, str]]) -> str:
    """Join (role, content) pairs into a single plain-text block."""
    lines: List[str] = []
    for role, content in turns:
        speaker = "Assistant" if role == "assistant" else "User"
        lines.append(f"{speaker}: {content}")
    return "\n".join(lines)


def build_planning_system_prompt(
    idea_title: str,
    idea_description: Optional[str],
    section_titles: List[str],
    transcript: str,
) -> str:
    steps = "\n".join(f"{i + 1}. {t}" for i, t in enumerate(section_titles)) or "No sections yet."
    history = transcript or "No previous conversation."
    return f"""You are a planning assistant that helps break a project idea into implementation steps.

Idea: {idea_title}
Description: {idea_description or 'Not provided'}

Current Sections:
{steps}

Recent Conversation:
{history}

Answer the user's latest message. Keep suggestions concrete and ordered so they can become sections and tasks."""
