#!/usr/bin/env python3
"""
Plan a street-sweep ride from an Overpass map export.

The map file is an Overpass JSON response (``out geom`` or ``out body`` with
nodes). Ridden tracks are a JSON list of polylines of ``[lat, lon]`` points; a
manual route is a JSON list of ``[lon, lat]`` points.

Usage:
    python run_sweep.py map.json [--ridden ridden.json] [--start-lat LAT --start-lon LON]
        [--end-lat LAT --end-lon LON] [--selection NORTH SOUTH EAST WEST]
        [--manual-route route.json] [--avoid-gravel] [--avoid-highways] [--avoid-trails]
        [--output route.geojson]
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from rpp_core import (
    BoundingBox,
    RoutingOptions,
    RPPError,
    SolverConfig,
    build_graph,
    log_exception,
    setup_logging,
    solve_route,
)


def _load_json(path: Path, what: str):
    if not path.exists():
        raise FileNotFoundError(f"{what} file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def _point(lat, lon, name: str, parser: argparse.ArgumentParser):
    if lat is None and lon is None:
        return None
    if lat is None or lon is None:
        parser.error(f"--{name}-lat and --{name}-lon must be given together")
    return (lat, lon)


def to_geojson(solution) -> dict:
    """Route as a GeoJSON FeatureCollection with one LineString."""
    properties = solution.to_dict()
    properties.pop("route")
    properties["constructionPoints"] = sum(1 for p in solution.points if p.has_construction)
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "geometry": {
                    "type": "LineString",
                    "coordinates": [[p.lon, p.lat] for p in solution.points],
                },
                "properties": properties,
            }
        ],
    }


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Street-sweep route planner (Rural Postman)")
    parser.add_argument("map_json", help="Overpass JSON response with ways and nodes")
    parser.add_argument("--ridden", help="JSON file with ridden tracks ([[lat, lon], ...] per track)")
    parser.add_argument("--start-lat", type=float, help="Starting latitude (optional)")
    parser.add_argument("--start-lon", type=float, help="Starting longitude (optional)")
    parser.add_argument("--end-lat", type=float, help="Ending latitude (optional)")
    parser.add_argument("--end-lon", type=float, help="Ending longitude (optional)")
    parser.add_argument(
        "--selection",
        nargs=4,
        type=float,
        metavar=("NORTH", "SOUTH", "EAST", "WEST"),
        help="Cover only roads touching this box",
    )
    parser.add_argument("--manual-route", help="JSON file with a drawn route ([[lon, lat], ...])")
    parser.add_argument("--avoid-gravel", action="store_true", help="Penalize unpaved roads")
    parser.add_argument("--avoid-highways", action="store_true", help="Penalize primary/secondary roads")
    parser.add_argument("--avoid-trails", action="store_true", help="Penalize unpaved paths and footways")
    parser.add_argument("--config", help="JSON file with solver configuration overrides")
    parser.add_argument("--output", "-o", default="route.geojson", help="Output GeoJSON (default: route.geojson)")
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    args = parser.parse_args(argv)

    setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        log_file=Path(args.log_file) if args.log_file else None,
    )
    logger = logging.getLogger("rpp_core.run_sweep")

    start = _point(args.start_lat, args.start_lon, "start", parser)
    end = _point(args.end_lat, args.end_lon, "end", parser)

    try:
        map_data = _load_json(Path(args.map_json), "Map")
        ridden = _load_json(Path(args.ridden), "Ridden tracks") if args.ridden else None
        manual_route = _load_json(Path(args.manual_route), "Manual route") if args.manual_route else None
        config = SolverConfig.from_dict(_load_json(Path(args.config), "Config")) if args.config else None
    except (OSError, ValueError) as e:
        logger.error(str(e))
        return 1

    selection = None
    if args.selection:
        north, south, east, west = args.selection
        selection = {"north": north, "south": south, "east": east, "west": west}

    options = RoutingOptions(
        avoid_gravel=args.avoid_gravel,
        avoid_highways=args.avoid_highways,
        avoid_trails=args.avoid_trails,
    )

    try:
        graph = build_graph(map_data, ridden, options, config)
        solution = solve_route(
            graph,
            start_point=start,
            end_point=end,
            manual_route=manual_route,
            selection_box=BoundingBox.from_mapping(selection) if selection else None,
            config=config,
        )
    except RPPError as e:
        log_exception(logger, "Route planning failed", e)
        return 1

    if not solution.points:
        logger.warning("No roads to cover; nothing written")
        return 0

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("w", encoding="utf-8") as f:
        json.dump(to_geojson(solution), f, indent=2)

    logger.info(f"Mode: {solution.mode}, outcome: {solution.outcome}")
    if solution.is_degraded:
        logger.warning("Route is degraded: some required roads may be missing or joined by jumps")
    logger.info(f"Total distance: {solution.total_length / 1000:.2f} km")
    logger.info(f"Repeated distance: {solution.virtual_length / 1000:.2f} km")
    if solution.dropped_islands:
        logger.warning(f"Unreachable road groups skipped: {solution.dropped_islands}")
    logger.info(f"Route written to {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
