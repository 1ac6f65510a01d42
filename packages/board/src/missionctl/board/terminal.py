"""终端渲染 -- 把 BoardView / DetailView 输出为纯文本"""

from .presenter import REVIEW_BUCKET_LABELS, BoardView, CardView, DetailView

COLUMN_WIDTH = 28


def _clip(text: str, width: int = COLUMN_WIDTH) -> str:
    if len(text) <= width:
        return text.ljust(width)
    return text[: width - 1] + "…"


def format_card(card: CardView) -> list[str]:
    """单张卡片的文本行"""
    lines = [f"#{card.id} [{card.priority}] {card.title}"]
    meta = []
    if card.assignee:
        meta.append(f"@{card.assignee}")
    if card.due:
        meta.append(card.due)
    if meta:
        lines.append("  " + " · ".join(meta))
    if card.tags:
        lines.append("  " + " ".join(f"#{tag}" for tag in card.tags))
    return lines


def format_board(view: BoardView) -> str:
    """四列并排输出"""
    headers = []
    bodies: list[list[str]] = []
    for column in view.columns:
        header = f"{column.title} ({column.count})"
        if column.review_counts is not None:
            header += f" [{REVIEW_BUCKET_LABELS[view.review_bucket]}]"
        headers.append(_clip(header))
        lines: list[str] = []
        for card in column.cards:
            lines.extend(format_card(card))
            lines.append("")
        bodies.append(lines)

    height = max((len(body) for body in bodies), default=0)
    rows = [" | ".join(headers), "-+-".join("-" * COLUMN_WIDTH for _ in headers)]
    for index in range(height):
        cells = [_clip(body[index]) if index < len(body) else " " * COLUMN_WIDTH for body in bodies]
        rows.append(" | ".join(cells).rstrip())

    review = next((c for c in view.columns if c.review_counts is not None), None)
    if review is not None:
        counts = review.review_counts
        rows.append("")
        rows.append(
            f"Review: all {counts.all} · approval needed {counts.approval_needed}"
            f" · blocked {counts.blocked}"
        )
    rows.append(f"{view.total} task{'' if view.total == 1 else 's'} total")
    return "\n".join(rows)


def format_detail(view: DetailView) -> str:
    lines = format_card(view.card)
    if view.description:
        lines += ["", view.description]
    lines += ["", f"Steps ({len(view.steps)})"]
    for step in view.steps:
        suffix = f" {step.duration}" if step.duration else ""
        lines.append(f"  [{step.status}] {step.title}{suffix}")
        if step.agent_note:
            lines.append(f"      {step.agent_note}")
    lines += ["", f"Reviews ({len(view.reviews)})"]
    for review in view.reviews:
        confidence = f" ({review.confidence})" if review.confidence else ""
        lines.append(f"  [{review.status}] {review.reason}{confidence}")
        if review.reviewer_comment:
            lines.append(f"      {review.reviewer_comment}")
    return "\n".join(lines)
