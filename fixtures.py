# fixtures.py
import base64
import hashlib
from pathlib import Path
from models import RedefinitionResult

# Compiled form of:
#
#   public class NotTransform {
#     public void sayHi(String name) {
#       throw new Error("Should not be called!");
#     }
#   }
#
# Its access flags differ from the class being redefined, so the swap is
# expected to be rejected. DEX_BYTES must stay the dex of the same source.
CLASS_BYTES = base64.b64decode(
    "yv66vgAAADQAFQoABgAPBwAQCAARCgACABIHABMHABQBAAY8aW5pdD4BAAMoKVYBAARDb2RlAQAP"
    "TGluZU51bWJlclRhYmxlAQAFc2F5SGkBABUoTGphdmEvbGFuZy9TdHJpbmc7KVYBAApTb3VyY2VG"
    "aWxlAQAOVHJhbnNmb3JtLmphdmEMAAcACAEAD2phdmEvbGFuZy9FcnJvcgEAFVNob3VsZCBub3Qg"
    "YmUgY2FsbGVkIQwABwAMAQAJVHJhbnNmb3JtAQAQamF2YS9sYW5nL09iamVjdAAhAAUABgAAAAAA"
    "AgABAAcACAABAAkAAAAdAAEAAQAAAAUqtwABsQAAAAEACgAAAAYAAQAAAAEAAQALAAwAAQAJAAAA"
    "IgADAAIAAAAKuwACWRIDtwAEvwAAAAEACgAAAAYAAQAAAAMAAQANAAAAAgAO"
)
DEX_BYTES = base64.b64decode(
    "ZGV4CjAzNQANVRT7zleRLG4E5DhtK7OtoDxZlUQMI5eQAgAAcAAAAHhWNBIAAAAAAAAAAPwBAAAL"
    "AAAAcAAAAAUAAACcAAAAAgAAALAAAAAAAAAAAAAAAAQAAADIAAAAAQAAAOgAAACIAQAACAEAAEoB"
    "AABSAQAAXwEAAHIBAACGAQAAmgEAALEBAADBAQAAxAEAAMgBAADcAQAAAQAAAAIAAAADAAAABAAA"
    "AAcAAAAHAAAABAAAAAAAAAAIAAAABAAAAEQBAAAAAAAAAAAAAAAAAQAKAAAAAQABAAAAAAACAAAA"
    "AAAAAAAAAAABAAAAAgAAAAAAAAAGAAAAAAAAAO4BAAAAAAAAAQABAAEAAADjAQAABAAAAHAQAwAA"
    "AA4ABAACAAIAAADoAQAACQAAACIAAQAbAQUAAABwIAIAEAAnAAAAAQAAAAMABjxpbml0PgALTFRy"
    "YW5zZm9ybTsAEUxqYXZhL2xhbmcvRXJyb3I7ABJMamF2YS9sYW5nL09iamVjdDsAEkxqYXZhL2xh"
    "bmcvU3RyaW5nOwAVU2hvdWxkIG5vdCBiZSBjYWxsZWQhAA5UcmFuc2Zvcm0uamF2YQABVgACVkwA"
    "EmVtaXR0ZXI6IGphY2stNC4yMAAFc2F5SGkAAQAHDgADAQAHDgAAAAEBAIGABIgCAQGgAgwAAAAA"
    "AAAAAQAAAAAAAAABAAAACwAAAHAAAAACAAAABQAAAJwAAAADAAAAAgAAALAAAAAFAAAABAAAAMgA"
    "AAAGAAAAAQAAAOgAAAABIAAAAgAAAAgBAAABEAAAAQAAAEQBAAACIAAACwAAAEoBAAADIAAAAgAA"
    "AOMBAAAAIAAAAQAAAO4BAAAAEAAAAQAAAPwBAAA="
)

CLASS_FILENAME = "Transform.class"
DEX_FILENAME = "classes.dex"
SCENARIO_NAME = "DifferentAccess"


def get_class_bytes() -> bytes:
    return CLASS_BYTES


def get_module_bytes() -> bytes:
    return DEX_BYTES


def redefine(redefiner, target_class, class_bytes: bytes, dex_bytes: bytes) -> RedefinitionResult:
    """Attempt a class redefinition, turning any failure into a result."""
    try:
        redefiner.redefine_class(target_class, class_bytes, dex_bytes)
    except Exception as e:
        error_type = type(e).__qualname__
        if type(e).__module__ != "builtins":
            error_type = f"{type(e).__module__}.{error_type}"
        return RedefinitionResult(succeeded=False, error_type=error_type, message=str(e))
    return RedefinitionResult(succeeded=True)


def run_scenario(target, redefiner, target_class=None, out=print) -> RedefinitionResult:
    """
    Call say_hi, try to swap in the fixture class, report the failure, and
    call say_hi again. The caller compares the combined output.
    """
    target.say_hi(SCENARIO_NAME)
    result = redefine(redefiner, target_class or type(target), get_class_bytes(), get_module_bytes())
    if not result.succeeded:
        out(result.describe())
    target.say_hi(SCENARIO_NAME)
    return result


def describe_fixture():
    return [
        {"name": CLASS_FILENAME, "size": len(CLASS_BYTES), "sha256": hashlib.sha256(CLASS_BYTES).hexdigest()},
        {"name": DEX_FILENAME, "size": len(DEX_BYTES), "sha256": hashlib.sha256(DEX_BYTES).hexdigest()},
    ]


def export_fixture(directory) -> list:
    out_dir = Path(directory)
    out_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for name, payload in ((CLASS_FILENAME, CLASS_BYTES), (DEX_FILENAME, DEX_BYTES)):
        path = out_dir / name
        path.write_bytes(payload)
        written.append(str(path))
    return written
