from bindbridge.data_types import Use
from bindbridge.types import Namespace

from .api import ApiRecord, BridgeFunction

MAKE_STRING_CPP = """inline std::unique_ptr<std::string> make_string(::rust::Str str) {
    return std::make_unique<std::string>(std::string(str));
}"""


def generate_utilities(apis: list[ApiRecord]) -> None:
    """Add the helper APIs every bridge gets unless told otherwise."""
    apis.append(ApiRecord(
        ns=Namespace(),
        id="make_string",
        use_stmt=Use.USED,
        bridge_item=BridgeFunction(
            name="make_string",
            params=("str_: &str",),
            ret="UniquePtr<CxxString>",
        ),
        additional_cpp=MAKE_STRING_CPP,
    ))
