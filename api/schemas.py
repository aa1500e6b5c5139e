from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from annotated_reader.articles import Draft, Settings


class DraftBody(BaseModel):
    title: str = ""
    content: str = ""
    language: str = "KR"

    def to_draft(self) -> Draft:
        return Draft(title=self.title, content=self.content, language=self.language)


class SettingsBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field("", alias="apiKey")
    api_url: str = Field("", alias="apiUrl")
    model_name: str = Field("", alias="modelName")
    concurrency: int = Field(1, ge=1)
    auto_speak: bool = Field(False, alias="autoSpeak")
    pre_cache_audio: bool = Field(True, alias="preCacheAudio")
    tts_concurrency: int = Field(1, ge=1, alias="ttsConcurrency")

    def to_settings(self) -> Settings:
        return Settings.from_dict(self.model_dump(by_alias=True))
