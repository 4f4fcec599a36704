"""Asset service — equipment registry with soft delete."""

from typing import Optional

from assetsentinel.db.models import Asset
from assetsentinel.db.repository import Repository
from assetsentinel.errors import NotFoundError
from assetsentinel.schemas.asset import AssetCreate, AssetUpdate


class AssetService:
    def __init__(self, repo: Repository):
        self.repo = repo

    async def create(self, org_id: int, data: AssetCreate) -> Asset:
        asset = Asset(organization_id=org_id, **data.model_dump())
        await self.repo.add(asset)
        await self.repo.commit()
        await self.repo.refresh(asset)
        return asset

    async def get(self, org_id: int, asset_id: int) -> Asset:
        asset = await self.repo.get_asset(org_id, asset_id)
        if asset is None:
            raise NotFoundError(f"Asset {asset_id} not found")
        return asset

    async def list(
        self,
        org_id: int,
        page: int = 1,
        page_size: int = 10,
        status: Optional[str] = None,
        category: Optional[str] = None,
    ) -> tuple[list[Asset], int]:
        return await self.repo.list_assets(org_id, page, page_size, status, category)

    async def update(self, org_id: int, asset_id: int, changes: AssetUpdate) -> Asset:
        asset = await self.get(org_id, asset_id)
        for key, value in changes.model_dump(exclude_none=True).items():
            setattr(asset, key, value)
        await self.repo.commit()
        await self.repo.refresh(asset)
        return asset

    async def delete(self, org_id: int, asset_id: int) -> None:
        """Soft delete: the row stays, reads stop returning it."""
        if not await self.repo.soft_delete_asset(org_id, asset_id):
            raise NotFoundError(f"Asset {asset_id} not found")
        await self.repo.commit()
