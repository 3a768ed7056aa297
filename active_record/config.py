import attr


@attr.s(auto_attribs=True, frozen=True)
class Config:
    primary_key_column: str = "id"
    # strict fails the whole save / query on the first field error,
    # otherwise the field is logged and skipped
    strict: bool = True
    pluralize_table_names: bool = True
