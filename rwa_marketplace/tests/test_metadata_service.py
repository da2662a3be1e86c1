"""Tests for per-token metadata URIs."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from rwa_marketplace.core.exceptions import InvalidTokenIdError, UnauthorizedCallerError
from rwa_marketplace.services import metadata_service


def test_resolve_uri_appends_token_id():
    assert metadata_service.resolve_uri("ipfs://QmSampleMetadataURI", 1) == "ipfs://QmSampleMetadataURI/1"


def test_resolve_uri_is_literal_concatenation():
    assert metadata_service.resolve_uri("x/", 1) == "x//1"


async def test_uri_for_default_base(db: AsyncSession, deploy):
    contract = (await deploy()).address
    assert await metadata_service.uri(db, contract, 1) == "ipfs://QmSampleMetadataURI/1"


async def test_uri_for_unminted_token(db: AsyncSession, deploy):
    contract = (await deploy()).address
    assert await metadata_service.uri(db, contract, 999) == "ipfs://QmSampleMetadataURI/999"


async def test_uri_rejects_negative_token_id(db: AsyncSession, deploy):
    contract = (await deploy()).address
    with pytest.raises(InvalidTokenIdError):
        await metadata_service.uri(db, contract, -1)


async def test_set_base_uri_applies_to_later_reads(db: AsyncSession, deploy, addr):
    owner = addr()
    contract = (await deploy(owner)).address

    await metadata_service.set_base_uri(db, contract, owner, "https://new.example/meta")

    assert await metadata_service.base_uri(db, contract) == "https://new.example/meta"
    assert await metadata_service.uri(db, contract, 3) == "https://new.example/meta/3"


async def test_set_base_uri_non_owner_rejected(db: AsyncSession, deploy, addr):
    owner = addr()
    contract = (await deploy(owner)).address

    with pytest.raises(UnauthorizedCallerError):
        await metadata_service.set_base_uri(db, contract, addr(), "https://evil.example")

    assert await metadata_service.base_uri(db, contract) == "ipfs://QmSampleMetadataURI"
