import argparse
from pathlib import Path

from perivoro import calculate_hexagon_centers, Solver

def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--plot", action="store_true", help="save a PNG figure")
    parser.add_argument("--out", default="out", help="output folder")
    args = parser.parse_args()

    centers = calculate_hexagon_centers((2.0, 1.0), spacing=0.25)

    s = Solver(centers, domain_size=(2.0, 1.0))
    nodes, edges = s.run(save_fig=False)
    s.export_geometry(dir_path=args.out, file_type="txt")
    if args.plot:
        s.save_figure(str(Path(args.out) / "voro_hex.png"))

    print("nodes:", len(nodes), "edges:", len(edges))

if __name__ == "__main__":
    main()
