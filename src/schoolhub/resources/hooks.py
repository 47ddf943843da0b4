import logging
from typing import Any

from schoolhub.core.errors import BadRequestError, issue
from schoolhub.core.ports.storage import Record
from schoolhub.core.query import And, Condition, FindFirstArgs, FindUniqueArgs, Operator
from schoolhub.core.registry import HookContext, ResourceHooks
from schoolhub.resources.transforms import connect, full_name

logger = logging.getLogger(__name__)

STUDENT_EMAIL_DOMAIN = "school.edu"


class AuditedHooks(ResourceHooks):
    """Records every successful mutation in the ``audit_log`` model.

    The audit row is written through the transaction-bound store, so it is
    rolled back together with the mutation it describes.
    """

    def describe(self, record: Record) -> str | None:
        return None

    async def _audit(self, ctx: HookContext, action: str, entity_id: str, summary: str | None) -> None:
        await ctx.store.create(
            "audit_log",
            {
                "action": action,
                "entity": ctx.resource.resource_name,
                "entity_id": entity_id,
                "summary": summary,
            },
        )
        logger.debug("Audited %s %s %s", action, ctx.resource.resource_name, entity_id)

    async def after_create(self, ctx: HookContext, record: Record) -> None:
        await self._audit(ctx, "create", record["id"], self.describe(record))

    async def after_update(self, ctx: HookContext, id: str, record: Record) -> None:
        await self._audit(ctx, "update", id, self.describe(record))

    async def after_delete(self, ctx: HookContext, id: str) -> None:
        await self._audit(ctx, "delete", id, None)


class StudentHooks(AuditedHooks):
    def describe(self, record: Record) -> str | None:
        return f"{full_name(record)} ({record['roll_number']})"

    async def before_create(self, ctx: HookContext, data: Record) -> Record:
        """Attach the current academic year and a login account to the new student."""
        values: dict[str, Any] = dict(data)

        if "academic_year" not in values:
            year = await ctx.store.find_first(
                "academic_year", FindFirstArgs(where=Condition("is_current", Operator.EQ, True))
            )
            if year is not None:
                values["academic_year"] = connect(year["id"])

        first, last = values["first_name"], values["last_name"]
        email = values.get("email") or f"{first.lower()}.{last.lower()}@{STUDENT_EMAIL_DOMAIN}"
        user = await ctx.store.create("user", {"email": email, "name": f"{first} {last}", "role": "STUDENT"})
        values["user"] = connect(user["id"])
        return values


class AcademicYearHooks(AuditedHooks):
    """Keeps at most one academic year flagged as current."""

    def describe(self, record: Record) -> str | None:
        return record["name"]

    async def before_create(self, ctx: HookContext, data: Record) -> Record:
        if data.get("is_current"):
            await ctx.store.update_many(
                "academic_year", Condition("is_current", Operator.EQ, True), {"is_current": False}
            )
        return data

    async def before_update(self, ctx: HookContext, id: str, data: Record) -> Record:
        if "start_date" in data or "end_date" in data:
            await self._check_range(ctx, id, data)
        if data.get("is_current"):
            others = And((Condition("is_current", Operator.EQ, True), Condition("id", Operator.NE, id)))
            await ctx.store.update_many("academic_year", others, {"is_current": False})
        return data

    async def _check_range(self, ctx: HookContext, id: str, data: Record) -> None:
        """A partial update must not leave the stored year ending before it starts."""
        existing = await ctx.store.find_unique("academic_year", FindUniqueArgs(id=id)) or {}
        start = data.get("start_date", existing.get("start_date"))
        end = data.get("end_date", existing.get("end_date"))
        if start is not None and end is not None and end < start:
            raise BadRequestError.from_issues(
                "Validation failed", [issue(["endDate"], "endDate must not be before startDate")]
            )
