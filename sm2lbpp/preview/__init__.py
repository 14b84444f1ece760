"""Preview construction: path geometry, layout, rasterization and PNG encoding.

Flow:
    shape (GeometryBuilder) → layout (normalize) → raster (render_preview) → encode (encode_png)
"""
