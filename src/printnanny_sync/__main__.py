from printnanny_sync.main import main

raise SystemExit(main())
