from fakes import FakeFrame, FakePage

from browser_command_engine.browser.frames import FrameScanner


def test_main_document_is_always_first() -> None:
    main = FakeFrame(url="https://example.com")
    ads = FakeFrame(url="https://ads.example.com", name="ads")
    checkout = FakeFrame(url="https://pay.example.com", name="checkout")
    page = FakePage(main=main, children=[ads, checkout])

    documents = FrameScanner().documents_of(page)

    assert [frame for _, frame in documents] == [main, ads, checkout]
    refs = [ref for ref, _ in documents]
    assert refs[0].is_main
    assert [ref.index for ref in refs] == [0, 1, 2]
    assert refs[2].name == "checkout"
    assert refs[2].url == "https://pay.example.com"
    assert refs[1].describe() == "frame 1 (ads)"


def test_page_without_frames_has_single_document() -> None:
    page = FakePage()

    documents = FrameScanner().documents_of(page)

    assert len(documents) == 1
    assert documents[0][0].describe() == "main document"
