from fastapi import APIRouter

from . import catalog, cells, config, crews, employees, items, pairing, system

router = APIRouter()
router.include_router(crews.router, prefix="/crews", tags=["crews"])
router.include_router(catalog.router, prefix="/catalog", tags=["catalog"])
router.include_router(employees.router, prefix="/employees", tags=["employees"])
router.include_router(items.router, prefix="/items", tags=["items"])
router.include_router(cells.router, prefix="/cells", tags=["cells"])
router.include_router(pairing.router, prefix="/pairing", tags=["pairing"])
router.include_router(config.router, prefix="/config", tags=["config"])
router.include_router(system.router, prefix="/system", tags=["system"])

__all__ = ["router"]
