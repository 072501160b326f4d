from __future__ import annotations

from image_multi_editor.cli import main

if __name__ == "__main__":
    main()
