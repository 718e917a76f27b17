import asyncio

import pytest

from client.api_client import ApiError
from ui.listing import MediaFilter
from ui.object_browser import BrowserState, ObjectBrowser


class _FakeClient:
    def __init__(self, entries=None):
        self.entries = list(entries or [])
        self.list_calls = []
        self.presign_batches = []
        self.uploads = []
        self.deleted = []
        self.folders = []
        self.list_error = None
        self.delete_errors = {}
        self.presign_gate = None

    async def list_objects(self, bucket, prefix="", recursive=False):
        self.list_calls.append((bucket, prefix, recursive))
        if self.list_error is not None:
            raise self.list_error
        return list(self.entries)

    async def presigned_urls(self, bucket, keys, expiry=3600):
        self.presign_batches.append(list(keys))
        if self.presign_gate is not None:
            await self.presign_gate.wait()
        return {k: f"http://signed/{k}" for k in keys}

    async def presigned_url(self, bucket, key, expiry=3600):
        return f"http://signed/{key}?ttl={expiry}"

    async def upload_file(self, bucket, filename, data, prefix="", content_type="application/octet-stream"):
        self.uploads.append((prefix, filename))
        return {"objectName": prefix + filename}

    async def delete_objects(self, bucket, keys):
        self.deleted.append(list(keys))
        errors = {k: v for k, v in self.delete_errors.items() if k in keys}
        return {"deleted": len(keys) - len(errors), "errors": errors}

    async def create_folder(self, bucket, folder_name):
        self.folders.append(folder_name)
        return {"success": True}


def _files(n, ext="txt"):
    return [
        {"name": f"file-{i:03d}.{ext}", "size": i, "lastModified": f"2024-01-01T00:{i // 60:02d}:{i % 60:02d}Z"}
        for i in range(n)
    ]


@pytest.mark.asyncio
async def test_pagination_grows_visible_window():
    client = _FakeClient(_files(250))
    browser = ObjectBrowser(client, "docs")
    await browser.load()

    assert browser.state is BrowserState.READY
    assert len(browser.visible) == 100
    assert browser.total_count == 250
    assert browser.has_more

    assert await browser.load_more()
    assert len(browser.visible) == 200
    assert await browser.load_more()
    assert len(browser.visible) == 250
    assert not browser.has_more

    assert not await browser.load_more()
    assert len(client.list_calls) == 1


@pytest.mark.asyncio
async def test_scroll_near_bottom_loads_next_page():
    client = _FakeClient(_files(150))
    browser = ObjectBrowser(client, "docs")
    await browser.load()

    assert not await browser.on_scroll(scroll_top=0, scroll_height=5000, client_height=800)
    assert len(browser.visible) == 100

    assert await browser.on_scroll(scroll_top=4100, scroll_height=5000, client_height=800)
    assert len(browser.visible) == 150


@pytest.mark.asyncio
async def test_load_more_is_noop_while_busy():
    client = _FakeClient(_files(250, ext="png"))
    browser = ObjectBrowser(client, "photos")
    await browser.load()

    client.presign_gate = asyncio.Event()
    first = asyncio.create_task(browser.load_more())
    await asyncio.sleep(0)
    while not client.presign_gate.is_set() and len(client.presign_batches) < 10:
        await asyncio.sleep(0)

    assert not await browser.load_more()
    assert len(browser.visible) == 200

    client.presign_gate.set()
    assert await first
    assert await browser.load_more()
    assert len(browser.visible) == 250


@pytest.mark.asyncio
async def test_thumbnails_are_batched_in_twenties():
    entries = _files(45, ext="jpg") + [{"prefix": "sub/"}]
    client = _FakeClient(entries)
    browser = ObjectBrowser(client, "photos")
    await browser.load()

    assert sorted(len(b) for b in client.presign_batches) == [5, 20, 20]
    assert len(browser.thumbnails) == 45
    assert browser.image_count == 45


@pytest.mark.asyncio
async def test_list_failure_sets_error_state():
    client = _FakeClient()
    client.list_error = ApiError(404, "Bucket does not exist", "not_found")
    browser = ObjectBrowser(client, "gone")
    await browser.load()

    assert browser.state is BrowserState.ERROR
    assert browser.error == "Bucket does not exist"
    assert browser.visible == []
    assert not await browser.load_more()


@pytest.mark.asyncio
async def test_media_filter_lists_whole_bucket_recursively():
    entries = [
        {"name": "a/old.png", "lastModified": "2023-01-01T00:00:00Z"},
        {"name": "b/new.jpg", "lastModified": "2024-01-01T00:00:00Z"},
        {"name": "c/clip.mp4", "lastModified": "2024-02-01T00:00:00Z"},
    ]
    client = _FakeClient(entries)
    browser = ObjectBrowser(client, "photos")
    await browser.go_to("a/")
    await browser.set_media_filter(MediaFilter.IMAGES)

    assert client.list_calls[-1] == ("photos", "", True)
    assert [i.name for i in browser.items] == ["b/new.jpg", "a/old.png"]

    await browser.set_media_filter(MediaFilter.VIDEOS)
    assert [i.name for i in browser.items] == ["c/clip.mp4"]
    assert browser.video_count == 1


@pytest.mark.asyncio
async def test_folder_click_navigates_and_resets_filter():
    entries = [{"prefix": "sub/"}, {"name": "x.txt"}]
    client = _FakeClient(entries)
    browser = ObjectBrowser(client, "docs")
    await browser.load()
    browser.media_filter = MediaFilter.IMAGES

    folder = browser.items[0]
    assert folder.is_folder
    await browser.click(folder)

    assert browser.prefix == "sub/"
    assert browser.media_filter is MediaFilter.ALL
    assert client.list_calls[-1] == ("docs", "sub/", False)
    assert browser.breadcrumbs == [("", ""), ("sub", "sub/")]


@pytest.mark.asyncio
async def test_modifier_click_toggles_file_selection():
    client = _FakeClient([{"name": "x.txt"}, {"name": "y.txt"}])
    browser = ObjectBrowser(client, "docs")
    await browser.load()
    x, y = browser.items

    await browser.click(x)
    assert browser.selected == []

    await browser.click(x, modifier=True)
    await browser.click(y, modifier=True)
    assert browser.selected == ["x.txt", "y.txt"]

    await browser.click(x, modifier=True)
    assert browser.selected == ["y.txt"]


@pytest.mark.asyncio
async def test_delete_selected_reports_failures_after_reload():
    client = _FakeClient([{"name": "x.txt"}, {"name": "y.txt"}])
    client.delete_errors = {"y.txt": "Access Denied"}
    browser = ObjectBrowser(client, "docs")
    await browser.load()
    browser.selected = ["x.txt", "y.txt"]

    deleted = await browser.delete_selected()

    assert deleted == 1
    assert client.deleted == [["x.txt", "y.txt"]]
    assert len(client.list_calls) == 2
    assert browser.selected == []
    assert browser.error == "Failed to delete 1 object(s): y.txt"


@pytest.mark.asyncio
async def test_upload_into_current_prefix_reports_progress():
    client = _FakeClient()
    browser = ObjectBrowser(client, "docs")
    await browser.go_to("inbox")
    progress = []

    ok = await browser.upload(
        [("a.txt", b"a", "text/plain"), ("b.txt", b"b", "text/plain")],
        on_progress=lambda done, total: progress.append((done, total)),
    )

    assert ok
    assert client.uploads == [("inbox/", "a.txt"), ("inbox/", "b.txt")]
    assert progress == [(1, 2), (2, 2)]


@pytest.mark.asyncio
async def test_create_folder_under_prefix():
    client = _FakeClient()
    browser = ObjectBrowser(client, "docs")
    await browser.go_to("a/")
    assert await browser.create_folder(" new ")
    assert client.folders == ["a/new"]
    assert not await browser.create_folder("   ")


@pytest.mark.asyncio
async def test_preview_reuses_thumbnail_and_links_use_their_ttls():
    client = _FakeClient([{"name": "pic.png"}, {"name": "doc.pdf"}])
    browser = ObjectBrowser(client, "docs")
    await browser.load()
    doc, pic = browser.items

    assert await browser.preview(pic) == "http://signed/pic.png"
    assert await browser.preview(doc) is None
    assert await browser.download_link(doc) == "http://signed/doc.pdf?ttl=300"
    assert await browser.share_link(doc) == "http://signed/doc.pdf?ttl=86400"
