"""Search backend result models."""

from typing import Annotated, Literal

from pydantic import BaseModel, Field, TypeAdapter


class ButtonOption(BaseModel):
    """A postback button offered to the user."""

    title: str
    payload: str


class ButtonSet(BaseModel):
    """Prompt text plus the buttons to choose from."""

    text: str
    data: list[ButtonOption] = Field(default_factory=list)


class ImageResult(BaseModel):
    """An image of a work or monument with its Wikidata identity."""

    id: str
    image: str
    label: str
    description: str = ""
    collection: str | None = None
    url: str | None = None
    author: str | None = None


class ButtonsSearchResult(BaseModel):
    type: Literal["buttons"] = "buttons"
    buttons: ButtonSet


class ImagesSearchResult(BaseModel):
    type: Literal["images"] = "images"
    images: ImageResult


class TextSearchResult(BaseModel):
    type: Literal["text"] = "text"
    text: str


SearchResult = Annotated[
    ButtonsSearchResult | ImagesSearchResult | TextSearchResult,
    Field(discriminator="type"),
]

search_result_adapter: TypeAdapter[SearchResult] = TypeAdapter(SearchResult)
