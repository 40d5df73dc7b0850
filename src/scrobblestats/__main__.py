from scrobblestats.cli import main

raise SystemExit(main())
