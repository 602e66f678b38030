"""Answer tagged union. The `type` tag selects the variant."""
from pydantic import BaseModel, Base64Bytes, Field
from typing import Annotated, Literal, Optional, List, Union


class TextAnswer(BaseModel):
    type: Literal["text"] = "text"
    value: str = ""


class OptionsAnswer(BaseModel):
    type: Literal["options"] = "options"
    values: List[str] = Field(default_factory=list)  # option labels


class NumberAnswer(BaseModel):
    type: Literal["number"] = "number"
    value: Optional[float] = None


class DateAnswer(BaseModel):
    type: Literal["date"] = "date"
    value: str = ""


class FileAnswer(BaseModel):
    type: Literal["file"] = "file"
    file_name: Optional[str] = None
    content_type: Optional[str] = None
    content: Optional[Base64Bytes] = None  # pending upload
    file_url: Optional[str] = None  # already uploaded

    @property
    def has_file(self) -> bool:
        return self.content is not None or bool(self.file_url)


class BooleanAnswer(BaseModel):
    type: Literal["boolean"] = "boolean"
    value: Optional[bool] = None


class ScaleAnswer(BaseModel):
    type: Literal["scale"] = "scale"
    value: Optional[int] = None


class AddressAnswer(BaseModel):
    type: Literal["address"] = "address"
    street: str = ""
    city: str = ""
    postcode: str = ""
    country: str = ""


Answer = Annotated[
    Union[
        TextAnswer,
        OptionsAnswer,
        NumberAnswer,
        DateAnswer,
        FileAnswer,
        BooleanAnswer,
        ScaleAnswer,
        AddressAnswer,
    ],
    Field(discriminator="type"),
]
