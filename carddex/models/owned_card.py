from dataclasses import dataclass, field


@dataclass(slots=True)
class OwnedCardRecord:
    """
    One physical holding group imported from a collection CSV file.

    Records are keyed by identity (reference dataset ID) plus variant.
    Quantity accumulates while the source file is parsed; afterwards the
    record is only read.

    Attributes:
        scryfall_id: Reference dataset identity (UUID)
        quantity: Number of copies held (positive)
        filename: Source CSV file name without extension
        finish: "normal", "foil" or "etched"
        user_lang: Language declared by the user in the export, if any
        name: Card name as written in the export, if any
        user_tags: Normalized tags from platform category / tag columns
        csv_extra: Unrecognized columns kept verbatim for export passthrough
    """

    scryfall_id: str
    quantity: int
    filename: str
    finish: str = "normal"
    user_lang: str | None = None
    name: str | None = None
    user_tags: list[str] = field(default_factory=list)
    csv_extra: dict[str, str] = field(default_factory=dict)

    @property
    def variant(self) -> tuple[str, str | None]:
        """(finish, declared language) pair distinguishing holdings of one identity."""
        return (self.finish, self.user_lang)
