from annotated_reader.articles import (
    Article,
    ArticleStatus,
    Draft,
    JsonFileSnapshotRepository,
    LocalArticleStorage,
    Sentence,
    Settings,
    Snapshot,
    SqlAlchemySnapshotRepository,
    StoragePaths,
    WordBlock,
    decode_snapshot,
    encode_snapshot,
)


def sample_snapshot() -> Snapshot:
    sentence = Sentence(
        id="a1_0",
        original="학교에 갑니다.",
        blocks=[
            WordBlock(text="학교", pos="noun", definition="school", chinese_root="学校"),
            WordBlock(text="에", pos="particle", definition="to", grammar_note="Location marker"),
            WordBlock(text=".", pos="punctuation", definition=".", audio_path=None),
        ],
        translation="I go to school.",
        audio_path="/data/audio/a1/sentence_x.mp3",
    )
    return Snapshot(
        articles=[
            Article(
                id="a1",
                title="학교에 갑니다.",
                preview="",
                language="KR",
                status=ArticleStatus.DONE,
                parsing_progress=100,
                sentences=[sentence],
                draft_content="학교에 갑니다.",
            ),
            Article(id="a2", title="Oops", preview="", language="RU", status=ArticleStatus.ERROR),
        ],
        draft=Draft(title="", content="половина текста", language="RU"),
        settings=Settings(api_key="k", api_url="https://x", model_name="m", concurrency=4, auto_speak=True),
    )


def test_snapshot_encode_decode_roundtrip():
    snapshot = sample_snapshot()
    assert decode_snapshot(encode_snapshot(snapshot)) == snapshot


def test_snapshot_uses_original_wire_names():
    data = sample_snapshot().to_dict()
    article = data["articles"][0]
    assert article["parsingProgress"] == 100
    assert article["draftContent"] == "학교에 갑니다."
    assert article["status"] == "done"
    assert article["sentences"][0]["blocks"][0]["chinese_root"] == "学校"
    assert data["settings"]["apiKey"] == "k"
    assert data["settings"]["ttsConcurrency"] == 1


def test_settings_from_legacy_payload_fill_defaults():
    settings = Settings.from_dict({"apiKey": "k", "apiUrl": "u", "modelName": "m", "concurrency": 3})
    assert settings.pre_cache_audio is True
    assert settings.auto_speak is False
    assert settings.tts_concurrency == 1


def test_json_file_repository_roundtrip(tmp_path):
    storage = LocalArticleStorage(StoragePaths(tmp_path / "data"))
    repo = JsonFileSnapshotRepository(storage)
    assert repo.load() is None

    payload = encode_snapshot(sample_snapshot())
    repo.save(payload)
    assert repo.load() == payload
    assert (tmp_path / "data" / "data.json").exists()
    assert not list((tmp_path / "data").glob("*.tmp"))
    assert decode_snapshot(repo.load()) == sample_snapshot()


def test_sqlalchemy_repository_roundtrip(tmp_path):
    db_path = tmp_path / "test.db"
    repo = SqlAlchemySnapshotRepository(f"sqlite+pysqlite:///{db_path}")
    assert repo.load() is None

    repo.save(encode_snapshot(Snapshot(settings=Settings(api_key="first"))))
    repo.save(encode_snapshot(sample_snapshot()))

    reopened = SqlAlchemySnapshotRepository(f"sqlite+pysqlite:///{db_path}")
    assert decode_snapshot(reopened.load()) == sample_snapshot()


def test_delete_artifacts_is_best_effort(tmp_path):
    storage = LocalArticleStorage(StoragePaths(tmp_path))
    audio = tmp_path / "audio" / "a1"
    audio.mkdir(parents=True)
    (audio / "block_1.mp3").write_bytes(b"id3")

    assert storage.has_artifacts("a1")
    storage.delete_artifacts("a1")
    assert not storage.has_artifacts("a1")
    # Nothing stored: no error.
    storage.delete_artifacts("never-existed")
