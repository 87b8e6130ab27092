from synicons.cli import main

raise SystemExit(main())
