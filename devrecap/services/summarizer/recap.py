"""Demo Day recap summarizer.

Builds the prompt from a repository's filtered commits and stats, calls the
model once, and parses the three-section answer. API problems come back as
a SummaryResult with a FailureKind instead of an exception.
"""

import asyncio
import logging
import re

import anthropic

from devrecap.services.summarizer.base import BaseInterpreter, MalformedResponseError
from devrecap.services.summarizer.types import (
    FailureKind,
    SummaryPayload,
    SummaryRequest,
    SummaryResult,
)

logger = logging.getLogger(__name__)

MAX_PROMPT_COMMITS = 50
MAX_FILES_PER_COMMIT = 5

_NUMBERED_ITEM = re.compile(r"^\d+[.)]\s+(.*)$")

SECTION_SUMMARY = "## Summary"
SECTION_ACHIEVEMENTS = "## Key Achievements"
SECTION_TIPS = "## Presentation Tips"


def classify_api_error(error: Exception) -> FailureKind:
    """Map an Anthropic SDK exception (or a local timeout) to a FailureKind."""
    # APITimeoutError subclasses APIConnectionError, so it goes first
    if isinstance(error, (anthropic.APITimeoutError, TimeoutError)):
        return FailureKind.TIMEOUT
    if isinstance(error, anthropic.APIConnectionError):
        return FailureKind.NETWORK
    if isinstance(error, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
        return FailureKind.AUTH
    if isinstance(error, anthropic.RateLimitError):
        return FailureKind.RATE_LIMIT
    if isinstance(error, anthropic.APIStatusError):
        if error.status_code >= 500:
            return FailureKind.SERVER
        return FailureKind.BAD_REQUEST
    return FailureKind.NETWORK


class RecapSummarizer(BaseInterpreter[SummaryRequest, SummaryPayload]):
    """Turns one repository's activity into a presentation-ready recap."""

    def get_system_prompt(self) -> str:
        return (
            "You are helping a developer prepare for a Demo Day presentation. "
            "You read git activity and explain what was built, in plain language, "
            "for an audience of engineers and product people."
        )

    def format_input(self, input_data: SummaryRequest) -> str:
        req = input_data
        stats = req.stats
        parts: list[str] = [f"Repository: {req.repository}"]

        if req.remote_url:
            parts.append(f"URL: {req.remote_url}")

        parts.append(f"Timespan: {req.since:%Y-%m-%d} to {req.until:%Y-%m-%d}")
        if req.authors:
            parts.append(f"Authors: {', '.join(req.authors)}")

        parts.append("")
        parts.append("Statistics:")
        parts.append(f"- Total commits: {stats.total_commits}")
        parts.append(f"- Files changed: {stats.total_files_changed}")
        parts.append(f"- Lines added: {stats.total_insertions}")
        parts.append(f"- Lines deleted: {stats.total_deletions}")
        parts.append(f"- Net lines: {stats.net_lines_changed:+d}")
        if stats.pr_count > 0:
            parts.append(f"- Pull requests: {stats.pr_count}")

        if req.author_stats:
            parts.append("")
            parts.append("Per author:")
            for email, author_stats in req.author_stats.items():
                parts.append(
                    f"- {email}: {author_stats.total_commits} commits, "
                    f"+{author_stats.total_insertions}/-{author_stats.total_deletions}"
                )

        parts.append("")
        parts.append(f"Commits ({len(req.commits)}):")
        for i, commit in enumerate(req.commits[:MAX_PROMPT_COMMITS], start=1):
            parts.append(f"{i}. {commit.short_hash} - {commit.subject}")
            if commit.references:
                refs = ", ".join(
                    req.pr_links.get(n, f"#{n}") for n in commit.references
                )
                parts.append(f"   PRs: {refs}")
            if commit.files_changed:
                shown = ", ".join(commit.files_changed[:MAX_FILES_PER_COMMIT])
                extra = len(commit.files_changed) - MAX_FILES_PER_COMMIT
                if extra > 0:
                    parts.append(f"   Files: {shown} (+{extra} more)")
                else:
                    parts.append(f"   Files: {shown}")

        if len(req.commits) > MAX_PROMPT_COMMITS:
            parts.append("")
            parts.append(f"(Showing first {MAX_PROMPT_COMMITS} of {len(req.commits)} commits)")

        parts.append(
            f"""
Please provide:
1. A concise summary of the work done (2-3 paragraphs)
2. Key achievements (3-5 bullet points)
3. Tips for presenting this work in a screenshare demo (3-5 tips)

Format your response EXACTLY as follows:

{SECTION_SUMMARY}
[Your 2-3 paragraph summary here]

{SECTION_ACHIEVEMENTS}
- [Achievement 1]
- [Achievement 2]
- [Achievement 3]

{SECTION_TIPS}
1. [Tip 1]
2. [Tip 2]
3. [Tip 3]"""
        )

        return "\n".join(parts)

    def parse_output(self, response_text: str) -> SummaryPayload:
        """Parse the three sections. Lines outside a known section are ignored."""
        section: str | None = None
        summary_lines: list[str] = []
        achievements: list[str] = []
        tips: list[str] = []

        for line in response_text.splitlines():
            line = line.strip()

            if line.startswith(SECTION_SUMMARY):
                section = "summary"
                continue
            if line.startswith(SECTION_ACHIEVEMENTS):
                section = "achievements"
                continue
            if line.startswith(SECTION_TIPS):
                section = "tips"
                continue
            if not line or line.startswith("##"):
                continue

            if section == "summary":
                summary_lines.append(line)
            elif section == "achievements":
                if line.startswith(("- ", "* ")):
                    achievements.append(line[2:].strip())
            elif section == "tips":
                match = _NUMBERED_ITEM.match(line)
                if match:
                    tips.append(match.group(1).strip())

        narrative = " ".join(summary_lines)
        if not narrative and not achievements:
            raise MalformedResponseError("Response has no Summary or Key Achievements section")

        # Repository is filled in by summarize(); the model does not echo it reliably
        return SummaryPayload(
            repository="",
            narrative=narrative,
            achievements=achievements,
            presentation_tips=tips,
        )

    async def summarize(self, request: SummaryRequest) -> SummaryResult:
        """One attempt. Never raises for API or parse problems."""
        try:
            # Client timeout covers each HTTP request; this bounds the whole call
            async with asyncio.timeout(self.timeout + 5):
                payload = await self.interpret(request)
        except MalformedResponseError as e:
            logger.warning(f"Malformed summary response for {request.repository}: {e}")
            return SummaryResult.failed(FailureKind.MALFORMED_RESPONSE, str(e))
        except (anthropic.APIError, TimeoutError) as e:
            kind = classify_api_error(e)
            logger.debug(f"Summary call for {request.repository} failed ({kind.value}): {e}")
            return SummaryResult.failed(kind, str(e) or kind.value)

        payload.repository = request.repository
        return SummaryResult.ok(payload)
