from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

import pytest

from docsafe.core.exceptions import DocumentsUnavailableException
from docsafe.models.document import DocumentStatus
from docsafe.services.documents import DocumentFilter, document_listing_service

from factories import seed_document, seed_folder, seed_user

BASE = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


async def _seed_many(db, count: int):
    owner = await seed_user(db)
    return [
        await seed_document(db, owner, f"Doc {i:02d}", created_at=BASE + timedelta(hours=i))
        for i in range(count)
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [1, 7, 10, 25, 30])
async def test_pages_is_ceiling_of_total_over_limit(db, limit) -> None:
    await _seed_many(db, 25)
    page = await document_listing_service.list_documents(db, DocumentFilter(limit=limit))
    assert page.total == 25
    assert page.pages == math.ceil(25 / limit)
    assert len(page.documents) <= limit


@pytest.mark.asyncio
async def test_last_page_holds_the_remainder(db) -> None:
    await _seed_many(db, 25)
    page = await document_listing_service.list_documents(db, DocumentFilter(page=3, limit=10))
    assert len(page.documents) == 5
    assert page.page == 3


@pytest.mark.asyncio
async def test_non_positive_limit_uses_call_site_default(db) -> None:
    await _seed_many(db, 25)
    page = await document_listing_service.list_documents(db, DocumentFilter(limit=0, page=0), default_limit=20)
    assert page.limit == 20
    assert page.page == 1
    assert len(page.documents) == 20
    assert page.pages == 2


@pytest.mark.asyncio
async def test_oversized_limit_is_clamped(db) -> None:
    await _seed_many(db, 3)
    page = await document_listing_service.list_documents(db, DocumentFilter(limit=10_000))
    assert page.limit == 100


@pytest.mark.asyncio
async def test_empty_folder_short_circuits(db) -> None:
    await _seed_many(db, 3)
    folder = await seed_folder(db, "Vacía")
    page = await document_listing_service.list_documents(db, DocumentFilter(folder_id=str(folder.id)))
    assert page.documents == []
    assert page.total == 0
    assert page.pages == 0


@pytest.mark.asyncio
async def test_unknown_sort_falls_back_to_created_at(db) -> None:
    docs = await _seed_many(db, 4)
    asc = await document_listing_service.list_documents(
        db, DocumentFilter(sort_by="nonsense", sort_order="asc")
    )
    assert [d.id for d in asc.documents] == [d.id for d in docs]

    desc = await document_listing_service.list_documents(db, DocumentFilter(sort_by="nonsense"))
    assert [d.id for d in desc.documents] == [d.id for d in reversed(docs)]


@pytest.mark.asyncio
async def test_sort_by_title(db) -> None:
    owner = await seed_user(db)
    for title in ("Beta", "Alfa", "Gamma"):
        await seed_document(db, owner, title)
    page = await document_listing_service.list_documents(db, DocumentFilter(sort_by="title", sort_order="asc"))
    assert [d.title for d in page.documents] == ["Alfa", "Beta", "Gamma"]


@pytest.mark.asyncio
async def test_search_is_case_insensitive_newest_first(db) -> None:
    owner = await seed_user(db)
    await seed_document(db, owner, "Factura 001", created_at=BASE)
    await seed_document(db, owner, "Contrato", created_at=BASE + timedelta(days=1))
    await seed_document(db, owner, "factura final", created_at=BASE + timedelta(days=2))

    page = await document_listing_service.list_documents(db, DocumentFilter(search="factura"))
    assert [d.title for d in page.documents] == ["factura final", "Factura 001"]
    assert page.total == 2


@pytest.mark.asyncio
async def test_search_matches_filename_and_treats_wildcards_literally(db) -> None:
    owner = await seed_user(db)
    await seed_document(db, owner, "Recibo", filename="ticket_luz.pdf")
    await seed_document(db, owner, "Informe 100%")
    await seed_document(db, owner, "Informe 1000")

    by_filename = await document_listing_service.list_documents(db, DocumentFilter(search="LUZ"))
    assert [d.title for d in by_filename.documents] == ["Recibo"]

    literal = await document_listing_service.list_documents(db, DocumentFilter(search="100%"))
    assert [d.title for d in literal.documents] == ["Informe 100%"]


@pytest.mark.asyncio
async def test_rows_inline_owner_and_folder(db) -> None:
    owner = await seed_user(db, first_name="Ana", last_name="Pérez", email="ana@example.com")
    filed = await seed_document(db, owner, "En carpeta")
    loose = await seed_document(db, owner, "Suelto")
    folder = await seed_folder(db, "Facturas", color="#ef4444", documents=[filed])

    page = await document_listing_service.list_documents(db, DocumentFilter())
    rows = {d.title: d for d in page.documents}
    assert rows["En carpeta"].folder_id == folder.id
    assert rows["En carpeta"].folder_name == "Facturas"
    assert rows["En carpeta"].folder_color == "#ef4444"
    assert rows["Suelto"].folder_name is None
    assert rows["Suelto"].folder_color is None
    assert rows["Suelto"].owner_name == "Ana Pérez"
    assert rows["Suelto"].owner_email == "ana@example.com"
    assert loose.id == rows["Suelto"].id


@pytest.mark.asyncio
async def test_documents_without_owner_are_listed(db) -> None:
    await seed_document(db, None, "Huérfano")
    page = await document_listing_service.list_documents(db, DocumentFilter())
    assert page.total == 1
    assert page.documents[0].owner_name is None


@pytest.mark.asyncio
async def test_folder_filter_and_unassigned_filter(db) -> None:
    owner = await seed_user(db)
    a = await seed_document(db, owner, "A")
    b = await seed_document(db, owner, "B")
    c = await seed_document(db, owner, "C")
    folder = await seed_folder(db, "Contratos", documents=[a, b])

    in_folder = await document_listing_service.list_documents(db, DocumentFilter(folder_id=str(folder.id)))
    assert {d.id for d in in_folder.documents} == {a.id, b.id}

    unassigned = await document_listing_service.list_documents(db, DocumentFilter(folder_id="null"))
    assert [d.id for d in unassigned.documents] == [c.id]


@pytest.mark.asyncio
async def test_status_category_and_owner_filters(db) -> None:
    ana = await seed_user(db, "user_ana")
    luis = await seed_user(db, "user_luis")
    await seed_document(db, ana, "A", status=DocumentStatus.PROCESSED, category="Legal")
    await seed_document(db, ana, "B", status=DocumentStatus.ERROR)
    await seed_document(db, luis, "C", status=DocumentStatus.UPLOADED, category="Legal")

    by_status = await document_listing_service.list_documents(
        db, DocumentFilter(status=["processed", "error"])
    )
    assert {d.title for d in by_status.documents} == {"A", "B"}

    by_category = await document_listing_service.list_documents(db, DocumentFilter(category=["Legal"]))
    assert {d.title for d in by_category.documents} == {"A", "C"}

    by_owner = await document_listing_service.list_documents(db, DocumentFilter(owner_id=str(luis.id)))
    assert [d.title for d in by_owner.documents] == ["C"]


@pytest.mark.asyncio
async def test_month_range_keeps_whole_short_month(db) -> None:
    owner = await seed_user(db)
    await seed_document(db, owner, "Enero", created_at=datetime(2024, 1, 31, 12, tzinfo=timezone.utc))
    await seed_document(db, owner, "Febrero 10", created_at=datetime(2024, 2, 10, tzinfo=timezone.utc))
    await seed_document(db, owner, "Febrero 29", created_at=datetime(2024, 2, 29, 23, tzinfo=timezone.utc))
    await seed_document(db, owner, "Marzo", created_at=datetime(2024, 3, 1, 0, 30, tzinfo=timezone.utc))

    page = await document_listing_service.list_documents(
        db, DocumentFilter(date_from="2024-02", date_to="2024-02")
    )
    assert {d.title for d in page.documents} == {"Febrero 10", "Febrero 29"}


@pytest.mark.asyncio
async def test_malformed_filter_surfaces_generic_failure(db) -> None:
    with pytest.raises(DocumentsUnavailableException) as exc_info:
        await document_listing_service.list_documents(db, DocumentFilter(owner_id="not-a-uuid"))
    assert exc_info.value.status_code == 500
    assert exc_info.value.detail == "Error al obtener documentos"


@pytest.mark.asyncio
async def test_filter_facets(db) -> None:
    owner = await seed_user(db, first_name="Ana")
    await seed_document(db, owner, "A", mime_type="application/pdf", category="Legal")
    await seed_document(db, owner, "B", mime_type="image/png")
    facets = await document_listing_service.filter_facets(db)
    assert set(facets.types) == {"application/pdf", "image/png"}
    assert facets.categories == ["Legal"]
    assert facets.users == ["Ana"]
