"""
Unit tests for the document filter/query engine
"""

import pytest
from datetime import datetime, timedelta, timezone
from pydantic import ValidationError as PydanticValidationError

from docshelf.schemas.document import DocumentFilterParams
from docshelf.core.exceptions import NotFoundError
from docshelf.services.document_query import DocumentQueryService, escape_like, find_text_matches
from docshelf.utils.formatting import format_file_size

MB = 1024 * 1024


@pytest.fixture
def query(db_session, storage):
    return DocumentQueryService(db_session, storage)


def names(page):
    return [d.original_name for d in page.documents]


@pytest.mark.unit
class TestFilters:

    def test_size_and_tag_examples(self, query, test_user, make_document):
        make_document("A.pdf", size=1 * MB, tags=["x"])
        make_document("B.pdf", size=5 * MB, tags=["y"])

        by_size = query.list_documents(test_user.id, DocumentFilterParams(min_size=2))
        by_tag = query.list_documents(test_user.id, DocumentFilterParams(tags="x"))
        both = query.list_documents(test_user.id, DocumentFilterParams(min_size=2, tags="x"))

        assert names(by_size) == ["B.pdf"]
        assert names(by_tag) == ["A.pdf"]
        assert both.total_documents == 0

    def test_tags_match_any(self, query, test_user, make_document):
        make_document("A.pdf", tags=["x"])
        make_document("B.pdf", tags=["y", "z"])
        make_document("C.pdf", tags=["w"])

        page = query.list_documents(test_user.id, DocumentFilterParams(tags="x, z,"))

        assert sorted(names(page)) == ["A.pdf", "B.pdf"]

    def test_blank_values_do_not_constrain(self, query, test_user, make_document):
        make_document("A.pdf")
        make_document("B.pdf")

        page = query.list_documents(
            test_user.id,
            DocumentFilterParams(search="", collection_id="  ", tags="", date_from="", date_to="")
        )

        assert page.total_documents == 2

    def test_search_is_case_insensitive_on_both_names(self, query, test_user, make_document):
        make_document("Quarterly Report.pdf")
        make_document("notes.pdf", filename="report-raw.pdf")
        make_document("Other.pdf")

        page = query.list_documents(test_user.id, DocumentFilterParams(search="REPORT"))

        assert sorted(names(page)) == ["Quarterly Report.pdf", "notes.pdf"]

    def test_search_wildcards_match_literally(self, query, test_user, make_document):
        make_document("100% done.pdf")
        make_document("100 done.pdf")
        make_document("a_b.pdf")
        make_document("axb.pdf")

        percent = query.list_documents(test_user.id, DocumentFilterParams(search="100%"))
        underscore = query.list_documents(test_user.id, DocumentFilterParams(search="a_b"))

        assert names(percent) == ["100% done.pdf"]
        assert names(underscore) == ["a_b.pdf"]

    def test_uncategorized_sentinel(self, query, test_user, make_collection, make_document):
        folder = make_collection("Folder")
        make_document("inside.pdf", collection=folder)
        make_document("loose.pdf")

        for sentinel in ("null", "uncategorized"):
            page = query.list_documents(test_user.id, DocumentFilterParams(collection_id=sentinel))
            assert names(page) == ["loose.pdf"]

        page = query.list_documents(test_user.id, DocumentFilterParams(collection_id=str(folder.id)))
        assert names(page) == ["inside.pdf"]

    def test_date_only_upper_bound_covers_whole_day(self, query, test_user, make_document):
        day = datetime(2024, 3, 10, tzinfo=timezone.utc)
        make_document("morning.pdf", created_at=day + timedelta(hours=1))
        make_document("night.pdf", created_at=day + timedelta(hours=23, minutes=59))
        make_document("next day.pdf", created_at=day + timedelta(days=1, minutes=1))

        page = query.list_documents(
            test_user.id,
            DocumentFilterParams(date_from="2024-03-10", date_to="2024-03-10")
        )

        assert sorted(names(page)) == ["morning.pdf", "night.pdf"]

    def test_page_bounds_inclusive(self, query, test_user, make_document):
        make_document("short.pdf", pages=5)
        make_document("medium.pdf", pages=10)
        make_document("long.pdf", pages=50)

        page = query.list_documents(test_user.id, DocumentFilterParams(min_pages=5, max_pages=10))

        assert sorted(names(page)) == ["medium.pdf", "short.pdf"]

    def test_min_greater_than_max_is_rejected(self):
        with pytest.raises(PydanticValidationError):
            DocumentFilterParams(min_size=5, max_size=1)
        with pytest.raises(PydanticValidationError):
            DocumentFilterParams(min_pages=10, max_pages=2)

    def test_sizes_are_megabytes(self):
        params = DocumentFilterParams(min_size=1.5, max_size=2)

        assert params.min_size_bytes == int(1.5 * MB)
        assert params.max_size_bytes == 2 * MB

    def test_invalid_collection_id_is_rejected(self):
        with pytest.raises(PydanticValidationError):
            DocumentFilterParams(collection_id="not-a-uuid")

    def test_adding_a_filter_never_grows_the_result(self, query, test_user, make_document):
        make_document("a.pdf", size=1 * MB, pages=3, tags=["x"])
        make_document("b.pdf", size=3 * MB, pages=30, tags=["x", "y"])
        make_document("c.pdf", size=8 * MB, pages=300, tags=["z"])

        base = {"tags": "x,y,z"}
        unfiltered = set(names(query.list_documents(test_user.id, DocumentFilterParams(**base))))
        for extra in ({"min_size": 2}, {"max_pages": 30}, {"search": "b"}, {"tags": "x"}):
            narrowed = set(names(query.list_documents(test_user.id, DocumentFilterParams(**{**base, **extra}))))
            assert narrowed <= unfiltered


@pytest.mark.unit
class TestVisibility:

    def test_soft_deleted_and_foreign_documents_never_listed(self, query, test_user, other_user, make_document):
        make_document("mine.pdf")
        make_document("trashed.pdf", deleted=True)
        make_document("theirs.pdf", user=other_user)

        page = query.list_documents(test_user.id, DocumentFilterParams())

        assert names(page) == ["mine.pdf"]
        assert [d.original_name for d in query.search(test_user.id, "pdf")] == ["mine.pdf"]


@pytest.mark.unit
class TestSortingAndPagination:

    def test_default_sort_is_newest_first(self, query, test_user, make_document):
        make_document("old.pdf")
        make_document("new.pdf")

        assert names(query.list_documents(test_user.id, DocumentFilterParams())) == ["new.pdf", "old.pdf"]

    def test_sort_by_size_ties_broken_by_newest(self, query, test_user, make_document):
        make_document("small-old.pdf", size=MB)
        make_document("big.pdf", size=9 * MB)
        make_document("small-new.pdf", size=MB)

        page = query.list_documents(test_user.id, DocumentFilterParams(sort="size"))

        assert names(page) == ["small-new.pdf", "small-old.pdf", "big.pdf"]

    def test_sort_by_name_is_case_insensitive(self, query, test_user, make_document):
        make_document("beta.pdf")
        make_document("Alpha.pdf")

        page = query.list_documents(test_user.id, DocumentFilterParams(sort="name"))

        assert names(page) == ["Alpha.pdf", "beta.pdf"]

    def test_pages_are_disjoint_and_complete(self, query, test_user, make_document):
        same_time = datetime(2024, 5, 1, tzinfo=timezone.utc)
        for i in range(7):
            make_document(f"doc{i}.pdf", size=MB, created_at=same_time)

        seen = []
        for page_number in (1, 2, 3):
            page = query.list_documents(
                test_user.id,
                DocumentFilterParams(sort="-size", page=page_number, limit=3)
            )
            seen.extend(d.id for d in page.documents)

        assert len(seen) == 7
        assert len(set(seen)) == 7
        assert page.total_pages == 3
        assert page.total_documents == 7

    def test_empty_result_has_zero_pages(self, query, test_user):
        page = query.list_documents(test_user.id, DocumentFilterParams())

        assert page.total_documents == 0
        assert page.total_pages == 0
        assert page.current_page == 1

    def test_limit_bounds(self):
        with pytest.raises(PydanticValidationError):
            DocumentFilterParams(limit=0)
        with pytest.raises(PydanticValidationError):
            DocumentFilterParams(limit=101)
        with pytest.raises(PydanticValidationError):
            DocumentFilterParams(page=0)


@pytest.mark.unit
class TestDecoration:

    def test_documents_carry_formatted_size_and_signed_url(self, query, test_user, make_document):
        make_document("a.pdf", size=1536)

        document = query.list_documents(test_user.id, DocumentFilterParams()).documents[0]

        assert document.file_size_formatted == "1.5 KB"
        assert document.signed_url.startswith("https://storage.test/users/")

    def test_signing_failure_yields_null_url_for_that_document_only(self, query, storage, test_user, make_document):
        broken = make_document("broken.pdf")
        make_document("fine.pdf")
        storage.fail_url_for.add(broken.storage_path)

        documents = {d.original_name: d for d in query.list_documents(test_user.id, DocumentFilterParams()).documents}

        assert documents["broken.pdf"].signed_url is None
        assert documents["fine.pdf"].signed_url is not None

    def test_recent_lists_opened_documents_newest_first(self, query, test_user, make_document):
        now = datetime(2024, 6, 1, tzinfo=timezone.utc)
        make_document("never.pdf")
        make_document("yesterday.pdf", opened_at=now - timedelta(days=1))
        make_document("today.pdf", opened_at=now)

        assert [d.original_name for d in query.recent(test_user.id)] == ["today.pdf", "yesterday.pdf"]


@pytest.mark.unit
class TestHelpers:

    @pytest.mark.parametrize("size, expected", [
        (0, "0 Bytes"),
        (500, "500 Bytes"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (5 * MB, "5 MB"),
        (int(2.5 * 1024 ** 3), "2.5 GB"),
    ])
    def test_format_file_size(self, size, expected):
        assert format_file_size(size) == expected

    def test_escape_like(self):
        assert escape_like("50%_off\\") == "50\\%\\_off\\\\"


@pytest.mark.unit
class TestTextSearch:

    def test_matches_carry_context_and_position(self):
        text = "x" * 60 + "Needle" + "y" * 60

        matches = find_text_matches(text, "needle", context=50)

        assert len(matches) == 1
        assert matches[0].position == 60
        assert matches[0].text == "x" * 50 + "Needle" + "y" * 50

    def test_context_is_clipped_at_text_edges(self):
        matches = find_text_matches("needle in a haystack", "needle", context=50)

        assert matches[0].text == "needle in a haystack"
        assert matches[0].position == 0

    def test_term_is_literal_not_a_pattern(self):
        assert find_text_matches("costs $5 (approx.)", "(approx.)")[0].position == 9
        assert find_text_matches("aaa", ".*") == []

    def test_match_limit(self):
        assert len(find_text_matches("ab " * 10, "ab", limit=3)) == 3

    def test_search_inside_owned_document(self, query, test_user, other_user, make_document, db_session):
        mine = make_document("mine.pdf")
        mine.extracted_text = "Chapter one. The chapter ends."
        mine.has_text = True
        foreign = make_document("theirs.pdf", user=other_user)
        db_session.commit()

        matches = query.search_text(test_user.id, mine.id, "chapter")

        assert [m.position for m in matches] == [0, 17]
        with pytest.raises(NotFoundError):
            query.search_text(test_user.id, foreign.id, "chapter")

    def test_document_without_text_has_no_matches(self, query, test_user, make_document):
        document = make_document("scan.pdf")

        assert query.search_text(test_user.id, document.id, "anything") == []
