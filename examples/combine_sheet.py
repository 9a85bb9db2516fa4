import ezcut
from ezcut.bounds import Bounds
from ezcut.entity import EntityKey


def main() -> None:
    groups = [
        ezcut.read("examples/data/bracket.dxf", group_id="bracket"),
        ezcut.read("examples/data/plate.dxf", group_id="plate"),
    ]
    sheet = ezcut.Composite(tuple(groups), {EntityKey("plate", 0): "#FF0000"})
    sheet = sheet.packed(Bounds(0.0, 0.0, 600.0, 400.0), margin=3.0)

    for kept, duplicate in sheet.find_duplicates():
        print(f"duplicate: {duplicate} (same as {kept})")

    with open("/tmp/sheet.svg", "w", encoding="utf-8") as fh:
        fh.write(sheet.to_svg())
    with open("/tmp/sheet.dxf", "w", encoding="utf-8") as fh:
        fh.write(sheet.to_dxf())
    print("saved: /tmp/sheet.svg /tmp/sheet.dxf")


if __name__ == "__main__":
    main()
