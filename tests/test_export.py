import os

import httpx
import pytest

from wikisource_books import InvalidFormat, Settings, export_page, load_builder


def _wiki(requests):
    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"query": {"pages": [
            {"title": "Le Horla", "revisions": [{"*": "<p>Lettre<!-- brouillon --></p>"}]},
        ]}})
    return handler


@pytest.mark.asyncio
async def test_export_page_end_to_end(make_tool, builder, work_dir):
    requests, events = [], []
    settings = Settings(temp_dir=str(work_dir), ebook_convert=make_tool('cp "$1" "$2"'), exec_timeout=10)
    async with httpx.AsyncClient(transport=httpx.MockTransport(_wiki(requests))) as client:
        out = await export_page(
            "Le Horla", "odt", lang="fr", builder=builder, settings=settings,
            client=client, on_event=events.append,
        )

    assert out.endswith(".rtf")
    with open(out, encoding="utf-8") as fh:
        body = fh.read()
    assert "<p>Lettre</p>" in body and "brouillon" not in body
    assert [e["type"] for e in events] == ["page_fetch_start", "page_fetch_done", "convert_start", "convert_done"]
    assert events[-1]["path"] == out
    assert len(requests) == 1
    assert [p for p in os.listdir(work_dir) if p.endswith(".epub")] == []


@pytest.mark.asyncio
async def test_export_page_rejects_unknown_format_without_network(builder, work_dir):
    requests = []
    settings = Settings(temp_dir=str(work_dir))
    async with httpx.AsyncClient(transport=httpx.MockTransport(_wiki(requests))) as client:
        with pytest.raises(InvalidFormat):
            await export_page("Le Horla", "docx", lang="fr", builder=builder, settings=settings, client=client)
    assert requests == []
    assert builder.calls == 0


@pytest.mark.asyncio
async def test_broken_progress_callback_does_not_abort(make_tool, builder, work_dir):
    def on_event(ev):
        raise ValueError("ui went away")

    settings = Settings(temp_dir=str(work_dir), ebook_convert=make_tool('cp "$1" "$2"'), exec_timeout=10)
    async with httpx.AsyncClient(transport=httpx.MockTransport(_wiki([]))) as client:
        out = await export_page("Le Horla", "txt", lang="fr", builder=builder, settings=settings,
                                client=client, on_event=on_event)
    assert os.path.exists(out)


def test_load_builder_instantiates_classes(tmp_path, monkeypatch):
    (tmp_path / "my_epub_builder.py").write_text(
        "class Builder:\n"
        "    def create(self, document):\n"
        "        return 'built.epub'\n"
        "instance = Builder()\n",
        encoding="utf-8",
    )
    monkeypatch.syspath_prepend(str(tmp_path))
    assert load_builder("my_epub_builder:Builder").create(None) == "built.epub"
    assert load_builder("my_epub_builder:instance").create(None) == "built.epub"
    with pytest.raises(ValueError):
        load_builder("my_epub_builder")
