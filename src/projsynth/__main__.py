from projsynth.cli import main

raise SystemExit(main())
