"""Request filter model."""

from pydantic import BaseModel, Field

# Stands for "no provider" in providers and "unspecified" in languages.
NULL_TOKEN = "null"


class FilterSpec(BaseModel):
    """Optional demographic and provider criteria for an aggregation.

    Every dimension is a list of accepted values; an empty list does not
    filter on that dimension.
    """

    providers: list[str] = Field(default_factory=list)
    races: list[str] = Field(default_factory=list)
    ethnicities: list[str] = Field(default_factory=list)
    genders: list[str] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (
            self.providers
            or self.races
            or self.ethnicities
            or self.genders
            or self.languages
        )

    @property
    def provider_ids(self) -> list[str]:
        """Requested provider ids without the null token."""
        return [p for p in self.providers if p and p != NULL_TOKEN]

    @property
    def includes_no_provider(self) -> bool:
        return NULL_TOKEN in self.providers

    @property
    def language_codes(self) -> list[str]:
        """Requested language codes without the null token."""
        return [code for code in self.languages if code and code != NULL_TOKEN]

    @property
    def includes_unspecified_language(self) -> bool:
        return NULL_TOKEN in self.languages
