import ezcut


result = ezcut.to_svg(
    ["examples/data/bracket.dxf", "examples/data/plate.dxf"],
    "/tmp/bracket_plate.svg",
    scale=1.0,
)
print(result)
