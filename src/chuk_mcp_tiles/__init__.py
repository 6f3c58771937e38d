"""
chuk-mcp-tiles: Map Tile Serving MCP Server

Serves pre-existing map tiles addressed by zoom/column/row from a tiles
directory or an MBTiles archive, through a bounded LRU cache that coalesces
concurrent misses into a single storage read.
"""
