from dataclasses import dataclass, field


@dataclass(frozen=True)
class Catalog:
    """Tax relevant view of a billing catalog: which product each plan sells."""

    products_by_plan: dict[str, str] = field(default_factory=dict)

    def find_product_name(self, plan_name: str | None) -> str | None:
        if plan_name is None:
            return None
        return self.products_by_plan.get(plan_name)
