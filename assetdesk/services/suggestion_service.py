"""
AI maintenance suggestions.

WHAT: Ask an LLM for 1-3 maintenance suggestions for an asset, store them
as ``suggestions`` records and meter usage against a monthly quota.

WHY: Suggestions cost money per request, so every organization has a
monthly request allowance kept in its own ``settings/ai-quota`` record.
The quota is checked before the model is called and charged once the
model has answered, whether or not the answer turns out to be usable.

HOW:
1. Check role and quota (create or reset the quota record as needed)
2. Build the prompt from the asset and its most recent tasks
3. Call OpenAI chat completions through the injected AsyncOpenAI client
4. Parse the JSON array (tolerating markdown fences), keep complete
   entries, normalize priority, store each as a record
"""

import json
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, APIError, RateLimitError, APIConnectionError

from assetdesk.core.config import settings
from assetdesk.core.exceptions import (
    AIGenerationError,
    AIQuotaExceededError,
    AIRateLimitError,
    AIServiceError,
    AIServiceUnavailableError,
    RecordNotFoundError,
)
from assetdesk.dao.org_store import new_record_id
from assetdesk.dao.query import order_by, where
from assetdesk.models.base import utcnow
from assetdesk.models.organization import Role
from assetdesk.models.record import RecordKind
from assetdesk.services.authorization import GuardedOrgStore, ensure_role
from assetdesk.services.task_service import TaskPriority

logger = logging.getLogger(__name__)

QUOTA_RECORD_ID = "ai-quota"

SYSTEM_PROMPT = "You are an expert maintenance advisor. You answer with JSON only."

# Asset text is user-provided and goes straight into the prompt
INJECTION_PATTERNS = [
    r"ignore\s+(previous|all|above)\s+instructions",
    r"disregard\s+(previous|all|above)\s+instructions",
    r"forget\s+(previous|all|above)\s+instructions",
    r"<\|.*?\|>",
]

MAX_FIELD_LENGTH = 2000


def next_reset_date(now: Optional[datetime] = None) -> datetime:
    """Midnight on the first day of the following month."""
    now = now or utcnow()
    if now.month == 12:
        return datetime(now.year + 1, 1, 1)
    return datetime(now.year, now.month + 1, 1)


def normalize_priority(priority: Any) -> str:
    """Upper-cased known priority, MEDIUM otherwise."""
    try:
        return TaskPriority(str(priority).upper()).value
    except ValueError:
        return TaskPriority.MEDIUM.value


def _clean_text(text: Any) -> str:
    text = "" if text is None else str(text)
    for pattern in INJECTION_PATTERNS:
        if re.search(pattern, text, re.IGNORECASE):
            logger.warning(f"Potential prompt injection in asset data: {pattern}")
            text = re.sub(pattern, "[removed]", text, flags=re.IGNORECASE)
    return text[:MAX_FIELD_LENGTH]


def _format_date(value: Any) -> str:
    return value.strftime("%Y-%m-%d") if isinstance(value, datetime) else "unknown"


def build_maintenance_prompt(asset: Dict[str, Any], task_history: Optional[List[Dict[str, Any]]] = None) -> str:
    """Prompt describing the asset and recent work on it."""
    metadata = json.dumps(asset.get("metadata") or {}, indent=2, default=str)
    lines = [
        "Analyze the following asset and provide maintenance suggestions.",
        "",
        "Asset Information:",
        f"- Name: {_clean_text(asset.get('name'))}",
        f"- Description: {_clean_text(asset.get('description')) or 'No description provided'}",
        f"- Metadata: {_clean_text(metadata)}",
        f"- Created: {_format_date(asset.get('createdAt'))}",
        f"- Last Updated: {_format_date(asset.get('updatedAt'))}",
    ]

    if task_history:
        lines += ["", "Recent Task History:"]
        for task in task_history:
            completed = _format_date(task.get("completedAt")) if task.get("completedAt") else "Not completed"
            lines.append(
                f"- {_clean_text(task.get('title'))} ({task.get('status')}): "
                f"{_clean_text(task.get('description'))}. Completed: {completed}"
            )

    lines += [
        "",
        "Provide 1-3 specific maintenance suggestions for this asset. For each suggestion include:",
        "1. A clear, actionable title",
        "2. A detailed description of what needs to be done and why",
        "3. Priority level (LOW, MEDIUM, HIGH, or URGENT)",
        f"4. Estimated cost in {settings.DEFAULT_CURRENCY} (if applicable)",
        "",
        "Focus on preventive maintenance based on asset type and age, safety considerations",
        "and cost-effective maintenance strategies.",
        "",
        "Format your response as a JSON array of suggestions:",
        '[{"title": "Suggestion title", "description": "Detailed description", '
        '"priority": "MEDIUM", "estimatedCost": 150.00}]',
        "",
        "Only return the JSON array, no additional text.",
    ]
    return "\n".join(lines)


def parse_suggestions(response_text: str) -> List[Dict[str, Any]]:
    """
    Extract the suggestion array from a model response.

    Accepts a bare array, an object with a ``suggestions`` array, or either
    wrapped in markdown code fences or surrounding prose.

    Raises:
        AIGenerationError: Nothing parseable as a suggestion list
    """
    candidates = [response_text or ""]
    for pattern in (r"```json\s*([\s\S]*?)\s*```", r"```\s*([\s\S]*?)\s*```"):
        match = re.search(pattern, response_text or "")
        if match:
            candidates.append(match.group(1))
    for pattern in (r"\[[\s\S]*\]", r"\{[\s\S]*\}"):
        match = re.search(pattern, response_text or "")
        if match:
            candidates.append(match.group(0))

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            parsed = parsed.get("suggestions")
        if isinstance(parsed, list):
            return [item for item in parsed if isinstance(item, dict)]

    raise AIGenerationError(
        message="Failed to parse AI response. Please try again.",
        raw_response=(response_text or "")[:500],
    )


def _estimated_cost(value: Any) -> Optional[float]:
    try:
        cost = float(value)
    except (TypeError, ValueError):
        return None
    return cost if cost > 0 else None


class SuggestionService:
    """
    Maintenance suggestions for one organization.

    Args:
        store: Role-guarded store for the current organization
        client: OpenAI client, or None when AI is not configured
        model: Chat model name
        quota_limit: Monthly request allowance for new quota periods
        history_limit: Number of recent tasks included in the prompt
    """

    def __init__(
        self,
        store: GuardedOrgStore,
        client: Optional[AsyncOpenAI],
        model: Optional[str] = None,
        quota_limit: Optional[int] = None,
        history_limit: Optional[int] = None,
    ):
        self.store = store
        self._client = client
        self._model = model or settings.OPENAI_MODEL
        self.quota_limit = quota_limit if quota_limit is not None else settings.AI_QUOTA_DEFAULT_LIMIT
        self.history_limit = history_limit if history_limit is not None else settings.AI_HISTORY_TASK_LIMIT

    @property
    def is_available(self) -> bool:
        return self._client is not None

    # ------------------------------------------------------------------
    # Quota
    # ------------------------------------------------------------------

    async def quota_usage(self) -> Dict[str, Any]:
        """Current period usage; a fresh period when no quota record exists yet."""
        quota = await self.store.get(RecordKind.SETTINGS, QUOTA_RECORD_ID)
        if quota is None:
            return {"requestsUsed": 0, "requestsLimit": self.quota_limit, "resetDate": next_reset_date()}
        if utcnow() >= quota["resetDate"]:
            return {"requestsUsed": 0, "requestsLimit": self.quota_limit, "resetDate": next_reset_date()}
        return {
            "requestsUsed": quota.get("requestsUsed", 0),
            "requestsLimit": quota.get("requestsLimit", self.quota_limit),
            "resetDate": quota["resetDate"],
        }

    async def _ensure_quota(self) -> Dict[str, Any]:
        """
        Create or roll over the quota record and require remaining allowance.

        Raises:
            AIQuotaExceededError: Allowance used up for this period
        """
        quota = await self.store.get(RecordKind.SETTINGS, QUOTA_RECORD_ID)
        if quota is None:
            quota = await self.store.create(
                RecordKind.SETTINGS,
                QUOTA_RECORD_ID,
                {"requestsUsed": 0, "requestsLimit": self.quota_limit, "resetDate": next_reset_date()},
            )
        elif utcnow() >= quota["resetDate"]:
            quota = await self.store.update(
                RecordKind.SETTINGS,
                QUOTA_RECORD_ID,
                {"requestsUsed": 0, "requestsLimit": self.quota_limit, "resetDate": next_reset_date()},
            )

        if quota.get("requestsUsed", 0) >= quota.get("requestsLimit", self.quota_limit):
            raise AIQuotaExceededError(
                message="Monthly AI quota exceeded. Please wait until next month or upgrade your plan.",
                reset_date=quota["resetDate"].isoformat(),
            )
        return quota

    async def _charge(self, quota: Dict[str, Any]) -> None:
        await self.store.update(
            RecordKind.SETTINGS,
            QUOTA_RECORD_ID,
            {"requestsUsed": quota.get("requestsUsed", 0) + 1},
        )

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------

    async def _complete(self, prompt: str) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=settings.OPENAI_TEMPERATURE,
                max_tokens=settings.OPENAI_MAX_TOKENS,
            )
        except RateLimitError as e:
            logger.warning(f"OpenAI rate limit exceeded: {e}")
            raise AIRateLimitError()
        except APIConnectionError as e:
            logger.error(f"OpenAI connection error: {e}")
            raise AIServiceError(message="Failed to connect to AI service")
        except APIError as e:
            logger.error(f"OpenAI API error: {e}")
            raise AIServiceError(message="AI service error", error=str(e))

        return response.choices[0].message.content or ""

    async def generate_for_asset(self, asset_id: str) -> List[Dict[str, Any]]:
        """
        Generate and store suggestions for an asset.

        Returns:
            The stored suggestion records

        Raises:
            AIServiceUnavailableError: No AI client configured
            InsufficientPermissionsError: Member cannot create records
            RecordNotFoundError: Asset does not exist
            AIQuotaExceededError: Monthly allowance used up
            AIRateLimitError / AIServiceError: Provider failure
            AIGenerationError: Unparseable response
        """
        if not self.is_available:
            raise AIServiceUnavailableError(message="AI service not configured - please set OPENAI_API_KEY")
        ensure_role(self.store.role, Role.FULL_ACCESS)

        asset = await self.store.get(RecordKind.ASSETS, asset_id)
        if asset is None:
            raise RecordNotFoundError(message="Asset not found", asset_id=asset_id)

        quota = await self._ensure_quota()
        history = await self.store.query(
            RecordKind.TASKS,
            [where("assetId", "==", asset_id)],
            order_by=[order_by("createdAt", "desc")],
            limit=self.history_limit,
        )

        logger.info(f"Generating suggestions for asset {asset_id} in {self.store.organization_id}")
        response_text = await self._complete(build_maintenance_prompt(asset, history))
        await self._charge(quota)

        stored = []
        for item in parse_suggestions(response_text):
            title = str(item.get("title") or "").strip()
            description = str(item.get("description") or "").strip()
            if not (title and description and item.get("priority")):
                continue
            stored.append(
                await self.store.create(
                    RecordKind.SUGGESTIONS,
                    new_record_id(),
                    {
                        "assetId": asset_id,
                        "title": title,
                        "description": description,
                        "priority": normalize_priority(item["priority"]),
                        "estimatedCost": _estimated_cost(item.get("estimatedCost")),
                        "aiGenerated": True,
                    },
                )
            )

        logger.info(f"Stored {len(stored)} suggestions for asset {asset_id}")
        return stored

    async def history(self, asset_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Stored suggestions, newest first, optionally for one asset."""
        constraints = [where("assetId", "==", asset_id)] if asset_id else []
        return await self.store.query(
            RecordKind.SUGGESTIONS,
            constraints,
            order_by=[order_by("createdAt", "desc")],
        )

    async def delete(self, suggestion_id: str) -> None:
        if await self.store.get(RecordKind.SUGGESTIONS, suggestion_id) is None:
            raise RecordNotFoundError(message="Suggestion not found", suggestion_id=suggestion_id)
        await self.store.delete(RecordKind.SUGGESTIONS, suggestion_id)
