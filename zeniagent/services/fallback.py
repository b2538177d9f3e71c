from __future__ import annotations

from zeniagent.services.context_snapshot import ContextSnapshot, DocumentContext
from zeniagent.services.directive_parser import strip_directive_blocks


def generate_fallback_reply(
    history: list[dict[str, str]],
    document: DocumentContext | None = None,
    snapshot: ContextSnapshot | None = None,
    *,
    assistant_name: str = "Zai",
) -> str:
    """Deterministic local reply used when the reasoning service cannot be reached.

    Never carries a directive, so it can never cause a mutation.
    """
    text = _latest_user_text(history).lower()
    name = snapshot.first_name if snapshot is not None else "there"

    if document is not None:
        if "summar" in text:
            reply = _summary_reply(name, document)
        elif "deadline" in text or "date" in text:
            reply = _deadline_reply(name, document)
        elif "key point" in text or "main" in text:
            reply = _key_points_reply(document)
        else:
            reply = None
        if reply is not None:
            return strip_directive_blocks(reply)

    if "email" in text or "write" in text:
        reply = _writing_reply(name)
    elif "study" in text or "learn" in text or "revise" in text:
        reply = _study_reply(name)
    elif "explain" in text or "what is" in text or "how" in text:
        reply = _explain_reply(name)
    else:
        reply = _overview_reply(name, snapshot, assistant_name)
    return strip_directive_blocks(reply)


def _latest_user_text(history: list[dict[str, str]]) -> str:
    for turn in reversed(history or []):
        if turn.get("role") == "user":
            return str(turn.get("content") or "")
    return ""


def _summary_reply(name: str, document: DocumentContext) -> str:
    return "\n".join(
        [
            f'📄 Summary of "{document.name}"',
            "",
            f"Hey {name}! Based on this {document.page_count}-page document, here are the key takeaways:",
            "",
            "Main Points",
            f"1. The document covers information related to {document.kind} content",
            "2. Key sections include an introduction, the main body and a conclusion",
            "3. Relevant details are organized throughout the document",
            "",
            "Recommendations",
            "- Review the highlighted sections for critical information",
            "- Note any dates or deadlines mentioned",
            "- Consider the main arguments and supporting evidence",
            "",
            "Would you like help extracting specific information, finding deadlines, or creating a study guide?",
        ]
    )


def _deadline_reply(name: str, document: DocumentContext) -> str:
    return "\n".join(
        [
            f'📅 Dates & Deadlines in "{document.name}"',
            "",
            f"Hey {name}! I can't reach the document analysis service right now.",
            "",
            "Manual Review Tips",
            "- Check headers and footers for dates",
            '- Look for keywords like "due", "deadline", "by", "until"',
            "- Review any schedule or timeline sections",
            "",
            "Ask me again in a moment and I'll pull the actual dates out for you.",
        ]
    )


def _key_points_reply(document: DocumentContext) -> str:
    return "\n".join(
        [
            f'📌 Key Points from "{document.name}"',
            "",
            "Detailed key point extraction needs the document analysis service, which is unavailable right now.",
            "",
            "What you can do now",
            "1. Use the Edit tools to highlight important sections",
            "2. Add text annotations for quick notes",
            "3. Export and share the annotated document",
        ]
    )


def _writing_reply(name: str) -> str:
    return "\n".join(
        [
            "✍️ Professional Email Template",
            "",
            f"Hey {name}! Here's a structure to help you write effectively:",
            "",
            "Subject Line",
            "Use a clear, action-oriented subject",
            "",
            "Email Structure",
            "1. Opening - Brief greeting and context",
            "2. Body - Main point or request with supporting details",
            "3. Closing - Clear call-to-action or next steps",
            "",
            "Tips",
            "- Keep it concise (5-7 sentences ideal)",
            "- Use bullet points for multiple items",
            "- Proofread before sending",
            "",
            "Would you like me to help customize this for a specific purpose?",
        ]
    )


def _study_reply(name: str) -> str:
    return "\n".join(
        [
            "📚 Study & Learning Assistance",
            "",
            f"Hey {name}! I can help you study more effectively.",
            "",
            "Available Tools",
            "1. Document Analysis - Summarize your study materials",
            "2. Key Points - Extract important concepts",
            "3. Deadline Tracking - Find assignment due dates",
            "4. Note Organization - Structure your notes",
            "",
            "Study Tips",
            "- Break documents into smaller sections",
            "- Create question-answer flashcards",
            "- Review summaries before exams",
            "",
            "What subject or topic would you like help with?",
        ]
    )


def _explain_reply(name: str) -> str:
    return "\n".join(
        [
            "🎓 Explanation Mode",
            "",
            f"Hey {name}! I'd be happy to explain any concept!",
            "",
            "For document content",
            "1. Attach the relevant document",
            "2. Quote the specific text you need explained",
            "3. Tell me your current understanding",
            "",
            "For general topics",
            "Just ask your question clearly, and I'll break it down into simple terms.",
            "",
            "What would you like me to explain?",
        ]
    )


def _overview_reply(name: str, snapshot: ContextSnapshot | None, assistant_name: str) -> str:
    lines = [
        f"👋 Hey {name}! I'm {assistant_name}",
        "",
        "I'm your assistant in Zeni, and I can see your workspace to help you better!",
    ]
    doc_count = snapshot.stats.total_documents if snapshot else 0
    folder_count = snapshot.stats.total_folders if snapshot else 0
    if doc_count or folder_count:
        lines += [
            "",
            "📊 Your Workspace",
            f"- {doc_count} document{'' if doc_count == 1 else 's'}",
            f"- {folder_count} folder{'' if folder_count == 1 else 's'}",
        ]
    lines += [
        "",
        "What I can help you with",
        "- Summarize documents and extract key points",
        "- Draft emails and improve your writing",
        "- Create study guides and explain concepts",
        "- Organize your folders and track recent activity",
        "",
        "What can I help you with today?",
    ]
    return "\n".join(lines)
