from .allocate_budget import stage_allocate_budget_v1
from .estimated_asf import stage_estimated_asf_v1
from .exact_asf import stage_exact_asf_v1
from .finalize import stage_finalize_v1
from .load import stage_load_v1
from .moq_blocks import stage_moq_blocks_v1
from .rank_suppliers import stage_rank_suppliers_v1
from .reallocate_cases import stage_reallocate_cases_v1
from .supplier_substitution import stage_supplier_substitution_v1


def register_all(registry):
    registry.register("ws.load.v1", stage_load_v1)
    registry.register("ws.moq_blocks.v1", stage_moq_blocks_v1)
    registry.register("ws.estimated_asf.v1", stage_estimated_asf_v1)
    registry.register("ws.rank_suppliers.v1", stage_rank_suppliers_v1)
    registry.register("ws.allocate_budget.v1", stage_allocate_budget_v1)
    registry.register("ws.exact_asf.v1", stage_exact_asf_v1)
    registry.register("ws.reallocate_cases.v1", stage_reallocate_cases_v1)
    registry.register("ws.supplier_substitution.v1", stage_supplier_substitution_v1)
    registry.register("ws.finalize.v1", stage_finalize_v1)
